import asyncio

from ecompurchasing import PurchasingEngine
from ecompurchasing.utils.logger import logger


async def main():
    async with PurchasingEngine() as engine:
        result = await engine.place_first_product_order()
        logger.info(f"{result.receipt}")


if __name__ == "__main__":
    asyncio.run(main())
