import argparse

from fertility.pipeline import PipelineRunner


def main() -> None:
    """Run the full fertility imbalance comparison pipeline."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--config", default="config/default.yaml", help="YAML configuration file")
    args = parser.parse_args()

    runner = PipelineRunner(args.config)
    runner.run()


if __name__ == "__main__":
    main()
