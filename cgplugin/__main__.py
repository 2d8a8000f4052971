"""Entry point for running cgplugin as a module: python -m cgplugin"""

from cgplugin.cli.commands import app

if __name__ == "__main__":
    app()
