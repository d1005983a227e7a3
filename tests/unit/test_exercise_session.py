import pytest
from unittest.mock import MagicMock, patch
from models.pose.exercises import get_exercise_config
from models.pose.features import ExtractionError
from models.pose.session import ExerciseSession, SessionLimitError, SessionRegistry
from models.pose.types import LandmarkFrame, PhaseStatus

class TestExerciseSession:

    def setup_method(self):
        """Set up a squat session."""
        self.config = get_exercise_config("squat")
        self.session = ExerciseSession(self.config, session_id="test-session")

    def _squat_frames(self, pose_frame_factory, reps=1):
        frames = []
        for _ in range(reps):
            frames += [pose_frame_factory(knee_angle=170, hip_angle=170)] * 3
            frames += [pose_frame_factory(knee_angle=85, hip_angle=80)] * 3
        frames += [pose_frame_factory(knee_angle=170, hip_angle=170)] * 3
        return frames

    def test_counts_squat_repetition(self, pose_frame_factory):
        """Test that synthetic standing/bottom frames produce one rep."""
        results = [self.session.process_frame(f) for f in self._squat_frames(pose_frame_factory)]

        assert results[-1].phase == "standing"
        assert results[-1].rep_count == 1
        assert any(r.phase == "bottom" for r in results)
        assert self.session.frames_processed == 9

    def test_empty_frame_skips_keypoint_building(self):
        """Test that a frame without landmarks never reaches the builder."""
        with patch("models.pose.session.build_keypoints") as mock_build:
            result = self.session.process_frame(LandmarkFrame([], [], timestamp_ms=0))

        mock_build.assert_not_called()
        assert result.status == PhaseStatus.NO_DETECTION
        assert result.phase == "standing"

    def test_extraction_error_is_contained(self, pose_frame_factory):
        """Test that extractor failures fall back to no detection."""
        extractor = MagicMock()
        extractor.get_pose_features_3d.side_effect = ExtractionError("broken")
        session = ExerciseSession(self.config, extractor=extractor)

        result = session.process_frame(pose_frame_factory())

        assert result.status == PhaseStatus.NO_DETECTION
        assert session.frames_processed == 1

    def test_truncated_world_landmarks(self, pose_frame_factory):
        """Test a frame whose world landmarks cannot produce any angle."""
        frame = pose_frame_factory()
        frame = LandmarkFrame(frame.image_landmarks, frame.world_landmarks[:1], frame.timestamp_ms)

        result = self.session.process_frame(frame)

        assert result.status == PhaseStatus.NO_DETECTION

    def test_run_drains_source(self, pose_frame_factory):
        """Test run() evaluates every frame and closes the source."""
        source = MagicMock()
        source.frames.return_value = iter(self._squat_frames(pose_frame_factory))
        callback = MagicMock()

        results = list(self.session.run(source, on_feedback=callback))

        assert len(results) == 9
        assert callback.call_count == 9
        source.close.assert_called_once()
        assert self.session.processor.rep_count == 1

    def test_summary(self, pose_frame_factory):
        """Test the session summary after a repetition."""
        for frame in self._squat_frames(pose_frame_factory):
            self.session.process_frame(frame)
        self.session.process_frame(LandmarkFrame([], []))

        summary = self.session.summary()

        assert summary["session_id"] == "test-session"
        assert summary["exercise"] == "squat"
        assert summary["frames_processed"] == 10
        assert summary["frames_with_detection"] == 9
        assert summary["rep_count"] == 1
        assert summary["phase_frames"] == {"standing": 6, "bottom": 3}
        assert summary["last_feedback"]["status"] == "no_detection"

        knee_stats = summary["joint_angle_statistics"]["left_knee_angle"]
        assert knee_stats["min"] == pytest.approx(85.0, abs=1e-6)
        assert knee_stats["max"] == pytest.approx(170.0, abs=1e-6)
        assert knee_stats["range"] == pytest.approx(85.0, abs=1e-6)

    def test_empty_summary(self):
        """Test the summary of a session without frames."""
        summary = self.session.summary()

        assert summary["frames_processed"] == 0
        assert summary["current_phase"] == "standing"
        assert summary["last_feedback"] is None
        assert summary["joint_angle_statistics"] == {}

    def test_history_is_bounded(self, pose_frame_factory):
        """Test that history keeps only the most recent frames."""
        session = ExerciseSession(self.config, history_size=4)
        for frame in self._squat_frames(pose_frame_factory):
            session.process_frame(frame)

        assert len(session.history) == 4
        assert session.frames_processed == 9

    def test_reset(self, pose_frame_factory):
        """Test that reset clears counters and history."""
        for frame in self._squat_frames(pose_frame_factory):
            self.session.process_frame(frame)

        self.session.reset()

        assert self.session.frames_processed == 0
        assert self.session.processor.rep_count == 0
        assert len(self.session.history) == 0

class TestSessionRegistry:

    def setup_method(self):
        """Set up a small registry."""
        self.registry = SessionRegistry(max_sessions=2)
        self.config = get_exercise_config("bicep_curl")

    def test_create_get_remove(self):
        """Test the session lifecycle."""
        session = self.registry.create(self.config)

        assert self.registry.get(session.session_id) is session
        assert len(self.registry) == 1
        assert self.registry.remove(session.session_id) is True
        assert self.registry.get(session.session_id) is None
        assert self.registry.remove(session.session_id) is False

    def test_session_limit(self):
        """Test that the registry refuses sessions beyond its limit."""
        self.registry.create(self.config)
        self.registry.create(self.config)

        with pytest.raises(SessionLimitError):
            self.registry.create(self.config)

    def test_sessions_are_independent(self, pose_frame_factory):
        """Test that sessions do not share processor state."""
        first = self.registry.create(self.config)
        second = self.registry.create(self.config)

        for _ in range(2):
            first.process_frame(pose_frame_factory(elbow_angle=45))

        assert first.processor.current_phase.name == "curled"
        assert second.processor.current_phase.name == "extended"
