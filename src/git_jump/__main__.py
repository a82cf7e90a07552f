"""Allow ``python -m git_jump``."""

from git_jump.cli import app

if __name__ == "__main__":
    app()
