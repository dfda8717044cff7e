# agrichain/pricing.py
"""Reference crop prices (MSP + market) shown next to listings."""

from typing import Any, Dict, Optional

from agrichain.models.crop_models import CropType

CROP_PRICING: Dict[CropType, Dict[str, Any]] = {
    CropType.wheat: {"msp": 2425.0, "marketPrice": 2500.0, "unit": "per quintal", "season": "2025-26"},
    CropType.rice: {"msp": 2300.0, "marketPrice": 2400.0, "unit": "per quintal", "season": "2025-26"},
    CropType.potato: {"msp": 0.0, "marketPrice": 1200.0, "unit": "per quintal", "season": "2025-26"},
    CropType.maize: {"msp": 1876.0, "marketPrice": 1950.0, "unit": "per quintal", "season": "2025-26"},
    CropType.mango: {"msp": 0.0, "marketPrice": 4750.0, "unit": "per quintal", "season": "2025-26"},
}


def get_pricing(crop_type) -> Optional[Dict[str, Any]]:
    try:
        key = CropType(crop_type)
    except ValueError:
        return None
    row = CROP_PRICING.get(key)
    return {"cropType": key.value, **row} if row else None


def all_pricing():
    return [{"cropType": k.value, **v} for k, v in CROP_PRICING.items()]
