"""featplan - feature board in a Markdown document, with per-card change history."""
