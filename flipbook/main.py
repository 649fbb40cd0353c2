# main.py
import logging
import os

from flipbook.app import run


def main():
    """Main function to run the Flipbook viewer."""
    logging.basicConfig(
        level=os.environ.get("FLIPBOOK_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run()


if __name__ == "__main__":
    main()
