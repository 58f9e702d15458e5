#!/usr/bin/env python3
"""
authgate - OAuth2 sign-in server with signed cookie sessions.
"""

import argparse
import logging
import secrets
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

logger = logging.getLogger(__name__)


def generate_secret() -> str:
    """Generate a random 32-byte hex secret for session signing."""
    return secrets.token_hex(32)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="OAuth2 sign-in server with signed cookie sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a session secret (prepend it to AUTH_SESSION_SECRETS to rotate)
  python main.py --generate-secret

  # Serve the sign-in endpoints
  GOOGLE_CLIENT_ID=... GOOGLE_CLIENT_SECRET=... AUTH_SESSION_SECRETS=... python main.py --serve
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP sign-in server")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Server listen port (default: 8080)")
    parser.add_argument(
        "--generate-secret", action="store_true", help="Print a new random session secret and exit"
    )

    args = parser.parse_args()

    if args.generate_secret:
        print(generate_secret())
        return

    if args.serve:
        from authgate.api.server import run

        try:
            run(host=args.host, port=args.port)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        return

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
