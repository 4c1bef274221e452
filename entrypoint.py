#!/usr/bin/env python3
"""
HubSpot MCP Bridge Container Entrypoint

Dispatches to the appropriate mode based on command line argument.

Modes:
  serve  - Run the HTTP bridge (default)
  check  - Print the resolved configuration and exit
"""

import json
import sys


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if mode == "serve":
        from hubspot_bridge.configs import get_full_config, get_logger, setup_logging
        from hubspot_bridge.controllers.http import run_server
        from hubspot_bridge.exceptions import ConfigurationError

        # Initialize logging (must be called before get_logger)
        setup_logging()
        logger = get_logger("entrypoint")

        try:
            config = get_full_config()
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)

        platform = config["platform"]
        logger.info("Starting HubSpot MCP Bridge")
        logger.info(f"Python {sys.version.split()[0]}, environment: {platform['environment'] or 'local'}")
        logger.info(f"Public domain: {platform['public_domain'] or 'not set'}")
        logger.info(f"HAS_HUBSPOT_TOKEN={bool(config['access_token'])}")

        run_server(config)

    elif mode == "check":
        from hubspot_bridge.configs import get_full_config
        from hubspot_bridge.exceptions import ConfigurationError

        try:
            config = get_full_config()
        except ConfigurationError as e:
            print(f"Invalid configuration: {e}", file=sys.stderr)
            sys.exit(1)

        if config["access_token"]:
            config["access_token"] = "***"
        print(json.dumps(config, indent=2, default=str))

    else:
        print(f"Unknown mode: {mode}", file=sys.stderr)
        print("Usage: entrypoint.py [serve|check]", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
