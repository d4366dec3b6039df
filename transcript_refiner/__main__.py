"""Package entry point for ``python -m transcript_refiner``.

HOW: ``python -m transcript_refiner --serve`` starts the HTTP API;
anything else is handed to the CLI's main().
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from transcript_refiner.server.app import run_api
        run_api()
    else:
        from transcript_refiner.cli import main
        main()
