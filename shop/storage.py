"""
Product image storage on Cloudinary.

Images live under the ``product-images`` folder with public ids of the form
``products/{timestamp}-{random}``.
"""
import logging
import os
import random
import string
import time

import cloudinary.uploader

logger = logging.getLogger(__name__)

BUCKET = 'product-images'


def object_path(filename):
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower() or 'jpg'
    token = ''.join(random.choices(string.ascii_lowercase + string.digits, k=11))
    return f"products/{int(time.time() * 1000)}-{token}.{ext}"


def public_id_from_url(url):
    """
    Maps a delivery URL back to its Cloudinary public id, or None when the
    URL does not point into the product image folder.
    """
    marker = f"/{BUCKET}/"
    if not url or marker not in url:
        return None
    path = url.split(marker, 1)[1]
    return f"{BUCKET}/{os.path.splitext(path)[0]}"


def upload_product_image(file):
    """Uploads ``file`` and returns its public URL. Upload errors propagate."""
    path = object_path(getattr(file, 'name', ''))
    result = cloudinary.uploader.upload(
        file,
        folder=BUCKET,
        public_id=os.path.splitext(path)[0],
        resource_type='image',
    )
    url = result.get('secure_url') or result['url']
    logger.info("Uploaded product image %s", url)
    return url


def delete_product_image(url):
    """Removes an uploaded image. Best-effort: returns False on any failure."""
    public_id = public_id_from_url(url)
    if not public_id:
        return False
    try:
        result = cloudinary.uploader.destroy(public_id)
    except Exception:
        logger.exception("Failed to delete product image %s", url)
        return False
    return result.get('result') == 'ok'
