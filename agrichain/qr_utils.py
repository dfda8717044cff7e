# agrichain/qr_utils.py
import json
from io import BytesIO

import qrcode


def listing_payload(crop, base_url: str) -> dict:
    """Data encoded in a listing QR: share link plus the fields a scanner shows offline."""
    return {
        "cropId": crop.id,
        "name": crop.name,
        "farmerName": crop.farmerName,
        "price": crop.price,
        "isNFT": crop.isNFT,
        "nftTokenId": crop.nftTokenId,
        "url": f"{base_url.rstrip('/')}/crops/{crop.id}",
    }


def generate_listing_qr(crop, base_url: str) -> bytes:
    """
    Generate a PNG QR code for a crop listing.

    :param crop: Crop model
    :param base_url: public app URL used for the share link
    :return: PNG bytes
    """
    qr_img = qrcode.make(json.dumps(listing_payload(crop, base_url)))
    buf = BytesIO()
    qr_img.save(buf, format="PNG")
    return buf.getvalue()
