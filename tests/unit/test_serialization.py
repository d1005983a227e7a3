import json
import numpy as np
from models.pose.types import Orientation, PhaseStatus
from utils.serialization import CustomJSONResponse, sanitize_for_json

class TestSanitizeForJson:

    def test_numpy_and_enum_values(self):
        """Test that NumPy scalars, arrays and enums become plain types."""
        data = {
            "count": np.int64(3),
            "angle": np.float32(90.5),
            "vector": np.array([1.0, 2.0]),
            "status": PhaseStatus.STABLE,
            "orientation": Orientation.LEFT_SIDE,
        }

        result = sanitize_for_json(data)

        assert result == {
            "count": 3,
            "angle": 90.5,
            "vector": [1.0, 2.0],
            "status": "stable",
            "orientation": "left_side",
        }
        assert type(result["count"]) is int

    def test_non_finite_floats(self):
        """Test that NaN and infinity become null."""
        assert sanitize_for_json([float("nan"), float("inf"), np.float64("-inf"), 1.5]) == [None, None, None, 1.5]

    def test_objects_with_to_dict(self):
        """Test that objects exposing to_dict are serialized through it."""
        class Result:
            def to_dict(self):
                return {"status": PhaseStatus.NO_DETECTION, "distance": float("nan")}

        assert sanitize_for_json({"result": Result()}) == {
            "result": {"status": "no_detection", "distance": None}
        }

    def test_custom_json_response(self):
        """Test that the response renders sanitized JSON."""
        response = CustomJSONResponse(content={"value": np.float64("nan"), "reps": np.int32(2)})

        assert json.loads(response.body) == {"value": None, "reps": 2}
