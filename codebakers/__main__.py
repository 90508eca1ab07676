"""
Entry point for running codebakers as a module.

Usage:
    python -m codebakers status
    python -m codebakers serve              # Run the HTTP API

This is equivalent to:
    python -m codebakers.cli.engineering_cli [args]
"""

import sys


def main():
    """Main entry point with subcommand support."""
    if len(sys.argv) > 1 and sys.argv[1].lower() == "serve":
        import uvicorn
        from codebakers.web.main import app

        uvicorn.run(app, host="127.0.0.1", port=8678)
        return 0

    from codebakers.cli.engineering_cli import main as cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
