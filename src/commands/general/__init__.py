"""General purpose commands available to everyone."""
