"""Shared test setup: keep structured logs off stdout."""

from rmadmin.log import configure_logging

configure_logging(debug=True)
