from reports import breakdown, dashboard, monthly, overview  # noqa: F401
