"""Device-side CLI for the sensor relay API; the Typer app lives in ``cli.app``."""
