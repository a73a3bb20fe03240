"""Terminal reporting for purge runs."""
