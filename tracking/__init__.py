"""Progress persistence for ChillTap Buddy."""
