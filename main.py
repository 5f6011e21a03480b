import asyncio
import logging
import os

from dotenv import load_dotenv

from deltaforce.bot import DeltaForceBot
from transports.console import ConsoleTransport


async def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s :: %(message)s")

    data_dir = os.getenv("DF_DATA_DIR", "data")
    config_path = os.getenv("DF_CONFIG_PATH", os.path.join(data_dir, "config.json"))
    user_id = os.getenv("DF_USER_ID", "10000")
    group_id = os.getenv("DF_GROUP_ID") or None

    bot = DeltaForceBot(config_path=config_path, data_dir=data_dir)
    transport = ConsoleTransport(bot, user_id=user_id, group_id=group_id)

    # stdin EOF (Ctrl-D) or an exit line ends the session
    try:
        await transport.start()
    finally:
        await bot.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
