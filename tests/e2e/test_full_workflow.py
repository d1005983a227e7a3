import json
import pytest
from run_exercise_feedback import main
from models.pose.sources import dump_recording

class TestFullWorkflow:

    def _write_recording(self, path, pose_frame_factory, reps=2):
        frames = []
        for _ in range(reps):
            frames += [pose_frame_factory(knee_angle=170, hip_angle=170) for _ in range(4)]
            frames += [pose_frame_factory(knee_angle=90, hip_angle=85) for _ in range(4)]
        frames += [pose_frame_factory(knee_angle=170, hip_angle=170) for _ in range(4)]
        for idx, frame in enumerate(frames):
            frame.timestamp_ms = idx * 33
        dump_recording(frames, str(path))
        return len(frames)

    def test_recorded_squats(self, tmp_path, capsys, pose_frame_factory):
        """Test the CLI on a recorded session of two squats."""
        recording = tmp_path / "squats.json"
        frame_count = self._write_recording(recording, pose_frame_factory)

        exit_code = main([str(recording), "--exercise", "squat", "--summary"])

        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["exercise"] == "squat"
        assert summary["rep_count"] == 2
        assert summary["frames_processed"] == frame_count
        assert summary["current_phase"] == "standing"

    def test_custom_config_file(self, tmp_path, capsys, pose_frame_factory):
        """Test the CLI with an exercise definition file."""
        recording = tmp_path / "squats.json"
        self._write_recording(recording, pose_frame_factory, reps=1)
        config_path = tmp_path / "knee_bend.json"
        config_path.write_text(json.dumps({
            "rep_phases_order": ["straight", "bent"],
            "pose_vectors": [[170], [90]],
            "labels": ["Straight", "Bent"],
            "distance_threshold": 20,
            "phase_change_persistence": 2,
            "joint_order": ["left_knee"]
        }))

        exit_code = main([str(recording), "--config", str(config_path), "--summary"])

        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["exercise"] == "knee_bend"
        assert summary["rep_count"] == 1

    def test_missing_input(self, tmp_path):
        """Test that a missing input file fails cleanly."""
        assert main([str(tmp_path / "missing.json")]) == 1

    def test_unknown_exercise(self, tmp_path, pose_frame_factory):
        """Test that an unknown exercise fails cleanly."""
        recording = tmp_path / "squats.json"
        self._write_recording(recording, pose_frame_factory, reps=1)

        assert main([str(recording), "--exercise", "burpee"]) == 1

    def test_malformed_recording(self, tmp_path):
        """Test that an unreadable recording fails cleanly."""
        recording = tmp_path / "broken.json"
        recording.write_text("{not json")

        assert main([str(recording)]) == 1
