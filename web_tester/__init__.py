"""web-tester: record the network traffic of a page load into PostgreSQL."""

__version__ = "1.0.0"
