"""Command-line entry point for the Pool Trade Tracker server."""

from pool_tracker.main import run_server


def main():
    """Run the Pool Trade Tracker server."""
    run_server()


if __name__ == "__main__":
    main()
