"""Allow ``python -m specnest``."""

from specnest.cli.main import cli

if __name__ == "__main__":
    cli(prog_name="specnest")
