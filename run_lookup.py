# run_lookup.py
import asyncio
import argparse
import logging
from pathlib import Path

# Import RichHandler here for centralized logging
from rich.logging import RichHandler

from jan_lookup import config
from jan_lookup.main import main as run_lookup
from jan_lookup.utils.codes import parse_codes_text, read_codes_file

if __name__ == "__main__":
    # --- Centralized Logging Configuration ---
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)-8s - %(name)-32s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(Path("lookup.log"), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG) # Log all debug messages to file
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    rich_handler = RichHandler(
        level=logging.INFO,
        show_time=True,
        show_level=True,
        show_path=False,
    )
    root_logger.addHandler(rich_handler)

    # --- Argument Parsing ---
    parser = argparse.ArgumentParser(
        description="Look up product master data (name, maker, price, size) for JAN codes.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        'codes',
        nargs='*',
        help="JAN codes to look up (comma separated values are accepted too)."
    )
    parser.add_argument(
        '--file',
        type=Path,
        help="""Text file with JAN codes, separated by commas and/or newlines.
Lines starting with '#' are ignored.
Example: python run_lookup.py --file codes.txt --save
"""
    )
    parser.add_argument(
        '--store',
        type=Path,
        default=config.PRODUCT_STORE_PATH,
        help="Product master JSON consulted before the AI page."
    )
    parser.add_argument(
        '--save',
        action='store_true',
        help="Save newly found products to the product store."
    )
    parser.add_argument(
        '--export',
        type=Path,
        help="Export the whole product store as JSON (sizes in cm) to this path."
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=config.MAX_BATCH_SIZE,
        help="Maximum number of codes per AI prompt."
    )
    parser.add_argument(
        '--headed',
        action='store_true',
        help="Show the browser window (useful when the page needs a manual nudge)."
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help="Show debug output on the console as well."
    )

    args = parser.parse_args()
    if args.debug:
        rich_handler.setLevel(logging.DEBUG)

    codes = parse_codes_text("\n".join(args.codes))
    if args.file:
        codes.extend(read_codes_file(args.file))

    if not codes and not args.export:
        parser.error("give at least one JAN code, a --file, or --export")

    logging.info("=" * 60)
    logging.info("JAN lookup starting with %d code(s)...", len(codes))
    logging.info("=" * 60)

    try:
        asyncio.run(run_lookup(
            codes,
            store_path=args.store,
            save=args.save,
            headless=not args.headed,
            batch_size=args.batch_size,
            export_path=args.export,
        ))
    except KeyboardInterrupt:
        logging.warning("Lookup interrupted by user.")
    except Exception as e:
        logging.critical("An unexpected error occurred: %s", e, exc_info=True)
    finally:
        logging.info("=" * 60)
        logging.info("Lookup execution finished.")
