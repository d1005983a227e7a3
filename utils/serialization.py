import math
from enum import Enum

import numpy as np
from fastapi.responses import JSONResponse

def sanitize_for_json(data):
    """Convert feedback payloads (enums, NumPy values, NaN/Inf) to plain JSON types."""
    if hasattr(data, 'to_dict'):
        return sanitize_for_json(data.to_dict())
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): sanitize_for_json(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [sanitize_for_json(item) for item in data]
    if isinstance(data, np.ndarray):
        return sanitize_for_json(data.tolist())
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, (float, np.floating)):
        # NaN/Inf are not valid JSON
        if math.isnan(data) or math.isinf(data):
            return None
        return float(data)
    return data

class CustomJSONResponse(JSONResponse):
    """JSONResponse that sanitizes its content before rendering."""
    def render(self, content) -> bytes:
        return super().render(sanitize_for_json(content))
