"""
scriptor console entry point.

    $ scriptor [-h | -v] <script> [...args]

Dispatches the scripts found under ./scripts (or $SCRIPTOR_SCRIPTS_PATH,
relative to the working directory).
"""
import os

from .dispatcher import run


def main():
    run(os.getcwd(), scripts_path=os.environ.get("SCRIPTOR_SCRIPTS_PATH", "scripts"))


if __name__ == '__main__':
    main()
