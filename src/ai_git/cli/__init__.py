"""Terminal front end: typer app, rich display and interactive prompts."""
