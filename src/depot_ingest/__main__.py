"""Entry point for `python -m depot_ingest`: runs the full data build."""

from depot_ingest.cli.build_data import build_data

if __name__ == "__main__":
    build_data(prog_name="depot-build")
