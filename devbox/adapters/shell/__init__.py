"""Shell adapters — installer scripts, directories, profile blocks."""
