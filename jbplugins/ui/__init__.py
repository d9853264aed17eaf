"""Terminal input, prompts and the interactive selector."""
