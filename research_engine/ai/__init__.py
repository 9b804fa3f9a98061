"""Language-completion access, prompts, and output parsing."""
