# mockups.py
"""
Product mockup images used as the design canvas background.

The color variants are fetched once, in parallel, when the server starts.
Fetching is best-effort: a color whose image cannot be fetched or decoded
borrows the white image when that one loaded, and is otherwise left out so
the canvas falls back to a solid fill for it.
"""

import asyncio
import logging
from io import BytesIO
from typing import Dict, Iterable, Optional, Tuple

import httpx
from PIL import Image

from teestudio.settings import settings

logger = logging.getLogger(__name__)

FALLBACK_COLOR = "white"

# Color -> file under <MOCKUP_BASE_URL>/images/products/
MOCKUP_FILES = {
    "white": "White_t-shirt_mockup_a7316e72.png",
    "black": "Black_t-shirt_mockup_7b5db8b3.png",
    "navy": "Navy_t-shirt_mockup_dd640fd4.png",
    "red": "White_t-shirt_mockup_a7316e72.png",
    "natural": "White_t-shirt_mockup_a7316e72.png",
}


def mockup_url(base_url: str, color: str) -> str:
    filename = MOCKUP_FILES.get(color, MOCKUP_FILES[FALLBACK_COLOR])
    return f"{base_url.rstrip('/')}/images/products/{filename}"


async def _fetch_image(client: httpx.AsyncClient, color: str, url: str) -> Tuple[str, Optional[Image.Image]]:
    try:
        response = await client.get(url)
        response.raise_for_status()
        image = Image.open(BytesIO(response.content))
        image.load()
        return color, image
    except httpx.HTTPError as e:
        logger.warning(f"Mockup fetch for '{color}' failed ({type(e).__name__}): {e}")
    except OSError as e:  # includes PIL.UnidentifiedImageError
        logger.warning(f"Mockup for '{color}' at {url} is not a readable image: {e}")
    return color, None


async def load_mockups(
    base_url: Optional[str] = None,
    colors: Iterable[str] = tuple(MOCKUP_FILES),
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Image.Image]:
    """
    Fetches the mockup for every color concurrently and returns {color: image}.

    Never raises for a failed color and never waits longer than the client
    timeout for any single image.
    """
    base_url = settings.MOCKUP_BASE_URL if base_url is None else base_url
    if not base_url:
        logger.info("MOCKUP_BASE_URL is not set. Designs render on solid fills.")
        return {}

    timeout = settings.MOCKUP_FETCH_TIMEOUT if timeout is None else timeout
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        tasks = [_fetch_image(client, color, mockup_url(base_url, color)) for color in colors]
        results = await asyncio.gather(*tasks)

    images = {color: image for color, image in results if image is not None}
    fallback = images.get(FALLBACK_COLOR)
    for color, image in results:
        if image is None and fallback is not None:
            images[color] = fallback

    logger.info(f"✅ Loaded mockups for {len(images)} of {len(results)} colors.")
    return images
