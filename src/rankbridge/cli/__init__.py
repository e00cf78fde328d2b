"""rankbridge command line interface (Typer)."""
