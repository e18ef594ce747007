"""Monitor the radiators of a Helki account.

This example demonstrates:
- Polling every node of every device at a fixed interval
- Skipping a cycle when the API is unavailable instead of exiting
- Passing a dedicated logger to the client

Credentials are read from the environment or a .env file in the project root.
"""

import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from pyhelki import HelkiClient, HelkiError


POLL_INTERVAL = 10

_LOGGER = logging.getLogger("helki.monitor")


async def poll_once(client: HelkiClient) -> list[dict]:
    """Read the status of every node.

    Returns:
        One row per node with its name, mode and temperatures.
    """
    rows = []
    for device in await client.get_devices():
        for node in await client.get_nodes(device.dev_id):
            status = await client.get_status(device.dev_id, node)
            rows.append(
                {
                    "device": device.name,
                    "node": node.name or node.path,
                    "mode": status.mode,
                    "set": status.set_temperature,
                    "measured": status.measured_temperature,
                    "heating": status.is_heating,
                }
            )
    return rows


def display(rows: list[dict]) -> None:
    """Print a status table."""
    print(f"\n{'=' * 70}")
    print(f"Helki Monitor - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"{'=' * 70}")

    for row in rows:
        flame = "*" if row["heating"] else " "
        print(f"{flame} {row['device']:<20} {row['node']:<20} {row['mode']!s:<8} {row['set']!s:>6} {row['measured']!s:>6}")


async def main() -> None:
    """Poll until interrupted."""
    load_dotenv(Path(__file__).parents[1] / ".env")
    logging.basicConfig(level=logging.INFO)

    async with HelkiClient(
        os.environ["HELKI_API_NAME"],
        os.environ["HELKI_CLIENT_ID"],
        os.environ["HELKI_CLIENT_SECRET"],
        os.environ["HELKI_USERNAME"],
        os.environ["HELKI_PASSWORD"],
        logger=_LOGGER,
    ) as client:
        while True:
            try:
                display(await poll_once(client))
            except HelkiError as err:
                _LOGGER.warning("Poll failed, skipping this cycle: %s", err)

            await asyncio.sleep(POLL_INTERVAL)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nMonitoring stopped")
