"""Basic usage example for pyhelki.

Credentials are read from the environment or a .env file in the project root:
HELKI_API_NAME, HELKI_CLIENT_ID, HELKI_CLIENT_SECRET, HELKI_USERNAME and
HELKI_PASSWORD.
"""

import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from pyhelki import HelkiClient


async def main() -> None:
    """List homes, devices and nodes with their current status."""
    load_dotenv(Path(__file__).parents[1] / ".env")
    logging.basicConfig(level=logging.INFO)

    async with HelkiClient(
        os.environ["HELKI_API_NAME"],
        os.environ["HELKI_CLIENT_ID"],
        os.environ["HELKI_CLIENT_SECRET"],
        os.environ["HELKI_USERNAME"],
        os.environ["HELKI_PASSWORD"],
    ) as client:
        homes = await client.get_grouped_devices()
        print(f"Found {len(homes)} home(s)")

        for home in homes:
            print(f"\nHome: {home.name} (owner: {home.owner})")

            for device in home.devs:
                print(f"  Device: {device.name} [{device.dev_id}]")
                print(f"    Product:  {device.product_id}")
                print(f"    Firmware: {device.fw_version}")

                for node in await client.get_nodes(device.dev_id):
                    status = await client.get_status(device.dev_id, node)
                    heating = "heating" if status.is_heating else "idle"
                    print(
                        f"    {node.name or node.path}: mode={status.mode} "
                        f"set={status.set_temperature}{status.units} "
                        f"measured={status.measured_temperature}{status.units} ({heating})"
                    )


if __name__ == "__main__":
    asyncio.run(main())
