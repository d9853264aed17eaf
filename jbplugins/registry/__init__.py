"""JetBrains Marketplace client."""
