"""Report scheduler: sends periodic status reports to chat subscribers."""
