"""Client-facing entry points: Flask API and command-line tools."""
