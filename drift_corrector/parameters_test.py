import json
import tempfile
import unittest

from pydantic import ValidationError

from drift_corrector.testutil import PARAMETERS_FIXTURE_FILE

from .image import ChannelSelection, Rect
from .parameters import RegistrationParameters


class ParametersTest(unittest.TestCase):
    def test_parsing(self) -> None:
        params = RegistrationParameters.from_json_file(str(PARAMETERS_FIXTURE_FILE))
        self.assertEqual(params.reference_channel, 0)
        self.assertIsNone(params.to_frame)
        self.assertEqual(params.log_polar_theta_size, 1080)
        self.assertEqual(params.log_polar_rho_size, 360)
        self.assertEqual(params.engine, "numpy")
        self.assertTrue(params.preserve_image_size)

    def test_defaults_match_fixture(self) -> None:
        params = RegistrationParameters.from_json_file(str(PARAMETERS_FIXTURE_FILE))
        self.assertEqual(params, RegistrationParameters())

    def test_roundtrip(self) -> None:
        with tempfile.NamedTemporaryFile("w+", delete=True) as f:
            params = RegistrationParameters.from_json_file(str(PARAMETERS_FIXTURE_FILE))
            params.to_json_file(f.name)
            f.flush()
            f.seek(0)
            contents = json.load(f)

        with open(PARAMETERS_FIXTURE_FILE) as f:
            fixture_contents = json.load(f)

        self.assertEqual(contents, fixture_contents)

    def test_all_channels(self) -> None:
        params = RegistrationParameters.model_validate_json('{"reference_channel": "all"}')
        self.assertEqual(params.reference_channel, ChannelSelection.ALL)
        self.assertEqual(json.loads(params.model_dump_json())["reference_channel"], "all")

    def test_roi(self) -> None:
        params = RegistrationParameters(roi=(10, 20, 30, 40))
        self.assertEqual(params.roi_rect, Rect(10, 20, 30, 40))
        self.assertIsNone(RegistrationParameters().roi_rect)

    def test_validation(self) -> None:
        with self.assertRaises(ValidationError):
            RegistrationParameters(from_frame=5, to_frame=2)
        with self.assertRaises(ValidationError):
            RegistrationParameters(translation_threshold=-1.0)
        with self.assertRaises(ValidationError):
            RegistrationParameters(roi=(0, 0, 0, 10))
        with self.assertRaises(ValidationError):
            RegistrationParameters(engine="opencl")
        with self.assertRaises(ValidationError):
            RegistrationParameters(log_polar_theta_size=0)

    def test_validate_assignment(self) -> None:
        params = RegistrationParameters(from_frame=2, to_frame=5)
        with self.assertRaises(ValidationError):
            params.to_frame = 1


if __name__ == "__main__":
    unittest.main()
