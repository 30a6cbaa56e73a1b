"""Discord client and voice sink."""
