import sys

from . import create_app
from .config import ConfigError


def main():
    try:
        app = create_app()
    except ConfigError as e:
        print(f"ERROR: {e}. Check your .env file.", file=sys.stderr)
        sys.exit(1)
    app.run(host="0.0.0.0", port=app.config["STORE"]["port"])


if __name__ == "__main__":
    main()
