"""Wiki page change tracking and merge feature."""
