"""HTTP server for Fixture Mirror."""
