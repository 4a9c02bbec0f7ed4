"""Source connectors for the systems watchbot polls."""
