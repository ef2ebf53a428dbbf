"""Services: data providers, notifications, the scan pipeline and return tracking."""
