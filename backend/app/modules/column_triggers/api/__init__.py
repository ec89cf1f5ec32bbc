"""Column Trigger API routers."""
