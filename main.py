import sys

from wine_quality.pipeline import PipelineRunner
from wine_quality.exceptions import DataFormatError, FitError, SchemaMismatchError


def main() -> None:
    """Run the full wine-quality model comparison report."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config/default.yaml"
    runner = PipelineRunner.from_yaml(config_path)
    try:
        runner.run()
    except (DataFormatError, SchemaMismatchError, FitError) as exc:
        sys.exit(f"error: {exc}")


if __name__ == "__main__":
    main()
