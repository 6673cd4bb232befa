"""
ScriptLens - Bash Function Explorer CLI

Usage:
    python -m scriptlens                  # Run the default mode
    python -m scriptlens list             # List scripts
    python -m scriptlens find deploy      # Fuzzy search and run
    python -m scriptlens --help           # See all commands
"""
from scriptlens.cli.manage import app

if __name__ == "__main__":
    app(prog_name="scriptlens")
