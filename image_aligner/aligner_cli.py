import logging
import sys

from pydantic_settings import CliApp

from image_aligner.aligner import Aligner
from image_aligner.image_loaders import LoadError
from image_aligner.parameters import AlignmentParameters


def main(args: list[str]) -> None:
    params = CliApp.run(AlignmentParameters, cli_args=args)
    log_level = logging.DEBUG if params.verbose else logging.INFO
    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")
    # Pillow logs every PNG chunk at debug level
    logging.getLogger("PIL").setLevel(logging.INFO)
    try:
        Aligner(params).run()
    except LoadError as e:
        logging.error(f"Cannot read the images or their sizes are not the same: {e}")
        sys.exit(1)


def console_main() -> None:
    main(sys.argv[1:])


if __name__ == "__main__":
    main(sys.argv[1:])
