"""Walk through the purchase flow against the configured backend."""

import asyncio

from ecompurchasing import Config, PurchasingEngine
from ecompurchasing.utils.logger import logger


async def place_order_demo():
    """List products, buy one with each calling form, then withdraw."""
    logger.info("=" * 70)
    logger.info("EcommercePurchasing - Order Placement Demo")
    logger.info("=" * 70)
    logger.info(f"Backend: {Config.CHAIN_BACKEND}")
    if not Config.is_simulated():
        logger.info(f"RPC URL: {Config.RPC_URL}")
    logger.info("")

    async with PurchasingEngine() as engine:
        instance = engine.instance
        converter = engine.converter
        accounts = await instance.get_accounts()

        logger.info("Catalogue:")
        for product in engine.products:
            logger.info(f"  {product} ({converter.format(product.price)})")
        logger.info("")

        product = engine.products[0]

        # Positional price
        logger.info("-" * 70)
        logger.info("STEP 1: placeOrder(id, price)")
        logger.info("-" * 70)
        result = await instance.place_order(product.product_id, product.price)
        logger.info(f"Receipt: {result.receipt}")

        # Options form
        logger.info("")
        logger.info("-" * 70)
        logger.info("STEP 2: placeOrder(id, {value, from})")
        logger.info("-" * 70)
        result = await instance.place_order(
            product.product_id,
            value=converter.format(product.price),
            sender=accounts[1],
        )
        logger.info(f"Receipt: {result.receipt}")

        # Wrong amount is reported, not raised
        logger.info("")
        logger.info("-" * 70)
        logger.info("STEP 3: paying the wrong amount")
        logger.info("-" * 70)
        result = await instance.place_order(product.product_id, product.price + 1)
        logger.info(f"Status: {result.receipt.status} ({result.receipt.revert_reason})")

        logger.info("")
        logger.info("-" * 70)
        logger.info("STEP 4: orders and withdrawal")
        logger.info("-" * 70)
        for order in await instance.get_orders():
            logger.info(f"ORDER -> {order}")

        balance = await instance.get_balance(instance.address)
        logger.info(f"Contract balance: {converter.format(balance)}")
        result = await instance.withdraw()
        logger.info(f"Withdraw: {result.receipt}")


if __name__ == "__main__":
    asyncio.run(place_order_demo())
