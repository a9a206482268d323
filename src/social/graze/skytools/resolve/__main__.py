from typing import Any, Dict, List
import argparse
import aiohttp
import asyncio
import json
import logging

from social.graze.skytools.app.cli import configure_logging
from social.graze.skytools.app.config import Settings
from social.graze.skytools.errors import SkyToolsException
from social.graze.skytools.resolve.handle import HandleResolver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skytools-resolve", description="Resolve handles and DIDs"
    )
    parser.add_argument("subject", nargs="+", help="The subject(s) to resolve.")
    parser.add_argument(
        "--plc-directory",
        default=None,
        help="The PLC directory to use for resolving did:plc DIDs. Defaults to PLC_DIRECTORY.",
    )
    parser.add_argument(
        "--race",
        action="store_true",
        help="Run handle resolution strategies concurrently.",
    )
    parser.add_argument(
        "--audit-log",
        action="store_true",
        help="Print the PLC audit log of each resolved DID.",
    )

    return parser


def settings_from_args(args: Dict[str, Any]) -> Settings:
    """Settings from the environment, with only the options actually given applied."""
    overrides: Dict[str, Any] = {}
    if args.get("plc_directory"):
        overrides["plc_directory"] = args["plc_directory"]
    if args.get("race"):
        overrides["resolve_race"] = True
    return Settings(**overrides)  # type: ignore


async def realMain() -> None:
    args = vars(build_parser().parse_args())

    subjects: List[str] = args.get("subject", [])
    settings = settings_from_args(args)

    async with aiohttp.ClientSession() as session:
        resolver = HandleResolver(session, settings)
        for subject in subjects:
            try:
                resolved = await resolver.resolve_subject(subject)
                print(json.dumps(resolved.model_dump()))
                if args.get("audit_log"):
                    audit_log = await resolver.directory.get_audit_log(resolved.did)
                    print(json.dumps(audit_log, indent=2))
            except SkyToolsException as e:
                logging.error("Unable to resolve subject %s: %s", subject, e)
            except Exception:
                logging.exception("Exception resolving subject %s", subject)


def main() -> None:
    configure_logging()
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
