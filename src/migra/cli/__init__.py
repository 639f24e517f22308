"""migra command-line interface (Typer + Rich)."""
