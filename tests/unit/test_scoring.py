"""
Unit Tests for Domain Scorers

Tests for the voice, tremor, gait, facial, spiral, tapping and
questionnaire scorers and their configuration.
"""
import pytest
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.core.signal.peaks import count_falling_crossings
from neurosynapse.core.scoring import (
    Domain,
    Severity,
    create_scorer,
    VoiceScorer,
    VoiceConfig,
    classify_voice,
    TremorScorer,
    TremorConfig,
    tremor_severity_score,
    GaitScorer,
    GaitConfig,
    gait_symmetry,
    FacialScorer,
    FacialConfig,
    eye_aspect_ratio,
    facial_symmetry,
    eye_aspect_ratios_from_mesh,
    LEFT_EYE_INDICES,
    RIGHT_EYE_INDICES,
    SpiralScorer,
    TappingScorer,
    QuestionnaireScorer,
)
from neurosynapse.core.scoring.spiral import spiral_radar


# Fixtures
def audio_frame(freq_hz: float, amplitude: float, sample_rate: float = 44100.0, n: int = 2048) -> np.ndarray:
    t = np.arange(n) / sample_rate
    return amplitude * np.sin(2 * np.pi * freq_hz * t + 0.3)


def feed(scorer, values, step_ms: float, start_ms: float = 0.0):
    for i, value in enumerate(values):
        scorer.ingest(Sample(start_ms + i * step_ms, value))
    return scorer


@pytest.fixture
def tremor_sine_samples():
    """300 samples of a 5 Hz, 2 mm peak sine at 60 Hz (metres)."""
    t = np.arange(300) / 60.0
    return 0.002 * np.sin(2 * np.pi * 5.0 * t)


class TestDomain:
    """Tests for Domain parsing and Severity ordering."""

    def test_from_string_aliases(self):
        assert Domain.from_string("Voice") == Domain.VOICE
        assert Domain.from_string("walking") == Domain.GAIT
        assert Domain.from_string("finger tapping") == Domain.TAPPING

    def test_unknown_domain(self):
        with pytest.raises(ValueError):
            Domain.from_string("cardiology")

    def test_severity_ordinal(self):
        assert Severity.NORMAL.ordinal == 0
        assert Severity.SEVERE.ordinal == 3
        assert Severity.from_ordinal(4) == Severity.SEVERE
        assert Severity.from_ordinal(1) == Severity.MILD


class TestScorerConfig:
    """Tests for config validation and settings defaults."""

    def test_duration_bounds(self):
        with pytest.raises(InvalidConfigError):
            VoiceConfig(max_duration_s=0).validate()
        with pytest.raises(InvalidConfigError):
            TremorConfig(max_duration_s=601).validate()

    def test_unknown_override(self):
        with pytest.raises(InvalidConfigError):
            TremorConfig.from_settings(window_size=10)

    def test_band_must_be_ordered(self):
        with pytest.raises(InvalidConfigError):
            TremorConfig.from_settings(band=(12.0, 3.0))

    def test_invalid_axis(self):
        with pytest.raises(InvalidConfigError):
            create_scorer(Domain.TREMOR, {"axis": "z"})

    def test_settings_defaults(self):
        config = GaitConfig.from_settings()
        assert config.step_threshold == pytest.approx(0.15)
        assert config.max_duration_s == pytest.approx(20.0)

    def test_override_applied(self):
        scorer = create_scorer(Domain.FACIAL, {"ear_threshold": 0.25})
        assert isinstance(scorer, FacialScorer)
        assert scorer.config.ear_threshold == 0.25


class TestVoiceScorer:
    """Tests for the voice scorer."""

    def test_classification_rules(self):
        assert classify_voice(-55.0, 100.0) == "silent"
        assert classify_voice(-55.0, 10.0) == "silent"
        assert classify_voice(-30.0, 60.0) == "unstable"
        assert classify_voice(-30.0, 90.0) == "normal"
        assert classify_voice(-10.0, 90.0) == "loud"
        assert classify_voice(-45.0, 90.0) == "quiet"

    def test_sustained_phonation(self):
        scorer = VoiceScorer(VoiceConfig())
        frames = [audio_frame(50.0, 0.001)] * 30 + [audio_frame(200.0, 0.05)] * 70
        feed(scorer, frames, step_ms=100.0)

        result = scorer.score()
        metrics = result.metrics

        assert metrics.value("baseline_db") < metrics.value("volume_db")
        assert metrics.value("volume_db") == pytest.approx(-29.0, abs=0.5)
        assert metrics.value("pitch_hz") == pytest.approx(200.0, rel=0.10)
        assert metrics.value("stability") == pytest.approx(100.0)
        assert result.status == "normal"
        assert result.severity == Severity.NORMAL
        assert result.radar == pytest.approx(1.0)

    def test_silence(self):
        scorer = VoiceScorer(VoiceConfig())
        feed(scorer, [np.zeros(2048)] * 50, step_ms=100.0)

        result = scorer.score()
        assert result.status == "silent"
        assert result.severity == Severity.SEVERE
        assert result.radar == 0.0

    def test_out_of_band_pitch_is_zero(self):
        scorer = VoiceScorer(VoiceConfig())
        assert scorer.estimate_pitch(audio_frame(1000.0, 0.1)) == 0.0

    def test_autocorrelation_pitch(self):
        scorer = VoiceScorer(VoiceConfig(pitch_method="autocorrelation"))
        assert scorer.estimate_pitch(audio_frame(150.0, 0.1)) == pytest.approx(150.0, rel=0.10)

    def test_single_frame_finalize(self):
        scorer = VoiceScorer(VoiceConfig())
        scorer.ingest(Sample(0.0, audio_frame(200.0, 0.05)))

        result = scorer.score()
        assert result.insufficient_data
        assert result.metrics.value("pitch_hz") == 0.0
        assert np.isfinite(result.metrics.value("baseline_db"))

    def test_short_calibration_uses_current_reading(self):
        scorer = VoiceScorer(VoiceConfig())
        feed(scorer, [audio_frame(200.0, 0.05)] * 3, step_ms=1500.0)
        # frames at 0 and 1500 ms calibrate; 3000 ms ends calibration with 2 frames
        assert scorer.is_calibrated
        assert scorer.score().metrics.value("baseline_db") == pytest.approx(-29.0, abs=0.5)


class TestTremorScorer:
    """Tests for the tremor scorer."""

    def test_five_hz_sine(self, tremor_sine_samples):
        scorer = feed(TremorScorer(TremorConfig()), tremor_sine_samples, step_ms=1000.0 / 60.0)
        result = scorer.score()

        assert 4.5 <= result.metrics.value("frequency_hz") <= 5.5
        assert result.metrics.value("amplitude_mm") == pytest.approx(1.414, abs=0.02)
        assert result.severity in (Severity.NORMAL, Severity.MILD)
        assert not result.insufficient_data

    def test_insufficient_samples(self, tremor_sine_samples):
        scorer = feed(TremorScorer(TremorConfig()), tremor_sine_samples[:10], step_ms=1000.0 / 60.0)
        result = scorer.score()

        assert result.insufficient_data
        assert result.metrics.value("amplitude_mm") == 0.0
        assert result.metrics.value("frequency_hz") == 0.0
        assert result.severity == Severity.NORMAL
        assert any("Insufficient" in w for w in result.warnings)

    def test_flat_signal_frequency_stays_zero(self):
        scorer = feed(TremorScorer(TremorConfig()), [0.1] * 60, step_ms=1000.0 / 60.0)
        assert scorer.score().metrics.value("frequency_hz") == 0.0

    def test_vector_samples_use_x_axis(self, tremor_sine_samples):
        values = [(x, 0.5, 0.0) for x in tremor_sine_samples]
        scorer = feed(TremorScorer(TremorConfig()), values, step_ms=1000.0 / 60.0)
        assert scorer.score().metrics.value("amplitude_mm") == pytest.approx(1.414, abs=0.02)

    def test_window_slides(self, tremor_sine_samples):
        config = TremorConfig(window_ms=1000.0)
        scorer = feed(TremorScorer(config), tremor_sine_samples, step_ms=1000.0 / 60.0)
        assert scorer.score().metrics.metadata["window_samples"] <= 61

    def test_severity_score(self):
        assert tremor_severity_score(0.0, 0.0) == 0.0
        assert tremor_severity_score(20.0, 5.0) == pytest.approx(70.0)
        assert tremor_severity_score(1000.0, 1000.0) == 100.0

    def test_non_finite_sample_skipped(self, tremor_sine_samples):
        values = tremor_sine_samples.copy()
        values[150] = np.nan
        scorer = feed(TremorScorer(TremorConfig()), values, step_ms=1000.0 / 60.0)
        result = scorer.score()

        assert 4.5 <= result.metrics.value("frequency_hz") <= 5.5
        assert result.metrics.value("amplitude_mm") == pytest.approx(1.414, abs=0.02)
        assert result.metrics.metadata["window_samples"] == 299


class TestGaitScorer:
    """Tests for the gait scorer."""

    def test_symmetry(self):
        assert gait_symmetry(10, 10) == 100.0
        assert gait_symmetry(0, 0) == 100.0
        assert gait_symmetry(5, 10) == pytest.approx(50.0)

    def test_walking(self):
        t = np.arange(0, 10000, 20)
        left = np.where((t // 600) % 2 == 0, 0.3, 0.0)
        right = np.where(((t + 300) // 600) % 2 == 0, 0.3, 0.0)
        scorer = feed(GaitScorer(GaitConfig()), list(zip(left, right)), step_ms=20.0)

        result = scorer.score()
        expected_left = count_falling_crossings(left, 0.15)
        expected_right = count_falling_crossings(right, 0.15)
        total = expected_left + expected_right

        assert result.metrics.value("left_steps") == expected_left
        assert result.metrics.value("right_steps") == expected_right
        assert result.metrics.value("cadence") == pytest.approx(total / scorer.elapsed_s * 60.0)
        assert result.status == "normal"
        assert result.severity == Severity.NORMAL

    def test_standing(self):
        scorer = feed(GaitScorer(GaitConfig()), [(0.0, 0.0)] * 100, step_ms=20.0)
        result = scorer.score()
        assert result.status == "standing"
        assert result.severity == Severity.SEVERE
        assert result.radar == 0.0

    def test_single_sample(self):
        scorer = feed(GaitScorer(GaitConfig()), [(0.3, 0.3)], step_ms=20.0)
        result = scorer.score()
        assert result.metrics.value("cadence") == 0.0
        assert result.insufficient_data

    def test_relative_to_mean_threshold(self):
        """Raised ankle positions are counted against the running mean."""
        t = np.arange(0, 10000, 20)
        left = np.where((t // 600) % 2 == 0, 1.3, 1.0)
        right = np.where(((t + 300) // 600) % 2 == 0, 1.3, 1.0)
        frames = list(zip(left, right))

        absolute = feed(GaitScorer(GaitConfig()), frames, step_ms=20.0).score()
        relative = feed(GaitScorer(GaitConfig(relative_to_mean=True, step_threshold=0.0)),
                        frames, step_ms=20.0).score()

        assert absolute.status == "standing"
        # the first drop of each foot is compared against an all-raised mean
        assert relative.metrics.value("left_steps") == count_falling_crossings(left, 1.15) - 1
        assert relative.metrics.value("right_steps") == count_falling_crossings(right, 1.15) - 1
        assert relative.metrics.value("cadence") > 0


class TestFacialScorer:
    """Tests for the facial scorer."""

    @staticmethod
    def blink_stream(seconds: float, blink_every_s: float, left: float = 0.3, right: float = 0.3):
        frames = []
        for i in range(int(seconds * 30)):
            t = i / 30.0
            phase = (t - 1.0) % blink_every_s
            if t >= 1.0 and phase < 0.1:
                frames.append((0.1, 0.1))
            else:
                frames.append((left, right))
        return frames

    def test_eye_aspect_ratio(self):
        points = [(0, 0), (1, 1), (3, 1), (4, 0), (3, -1), (1, -1)]
        assert eye_aspect_ratio(points) == pytest.approx(0.5)

    def test_symmetry_needs_ten_frames(self):
        assert facial_symmetry([0.3] * 5, [0.1] * 5) == 100.0
        assert facial_symmetry([0.3] * 10, [0.15] * 10) == pytest.approx(50.0)

    def test_normal_blinking(self):
        scorer = feed(FacialScorer(FacialConfig()), self.blink_stream(10, 4.0), step_ms=1000.0 / 30.0)
        result = scorer.score()

        assert result.metrics.value("blink_count") == 3
        assert 8.0 <= result.metrics.value("blink_rate") <= 20.0
        assert result.metrics.value("symmetry") == pytest.approx(100.0)
        assert result.status == "normal"

    def test_no_blinks_is_reduced(self):
        scorer = feed(FacialScorer(FacialConfig()), [(0.3, 0.3)] * 300, step_ms=1000.0 / 30.0)
        result = scorer.score()
        assert result.status == "reduced"
        assert result.severity == Severity.MODERATE
        assert result.radar == 0.0

    def test_asymmetric_eyes(self):
        frames = self.blink_stream(10, 4.0, left=0.32, right=0.2)
        scorer = feed(FacialScorer(FacialConfig()), frames, step_ms=1000.0 / 30.0)
        result = scorer.score()
        assert result.metrics.value("symmetry") < 85.0
        assert result.status == "asymmetric"
        assert result.severity == Severity.MILD

    def test_face_mesh_samples(self):
        open_eye = np.array([(0, 0), (1, 1), (3, 1), (4, 0), (3, -1), (1, -1)], dtype=float)
        closed_eye = open_eye * np.array([1.0, 0.1])

        def mesh(eye):
            landmarks = np.zeros((468, 2))
            landmarks[LEFT_EYE_INDICES] = eye
            landmarks[RIGHT_EYE_INDICES] = eye
            return landmarks

        frames = [mesh(open_eye)] * 30 + [mesh(closed_eye)] * 3 + [mesh(open_eye)] * 30
        scorer = feed(FacialScorer(FacialConfig()), frames, step_ms=1000.0 / 30.0)
        result = scorer.score()

        assert eye_aspect_ratios_from_mesh(mesh(open_eye)) == pytest.approx((0.5, 0.5))
        assert result.metrics.value("blink_count") == 1
        assert result.metrics.value("symmetry") == pytest.approx(100.0)


class TestSpiralScorer:
    """Tests for the spiral scorer."""

    @staticmethod
    def spiral_points(n: int = 200, jitter: float = 0.0):
        theta = np.linspace(0, 6 * np.pi, n)
        r = 5.0 * theta
        x = 300 + r * np.cos(theta) + jitter * (-1) ** np.arange(n)
        y = 300 + r * np.sin(theta)
        return list(zip(x, y))

    def test_smooth_spiral(self):
        scorer = feed(SpiralScorer(), self.spiral_points(), step_ms=50.0)
        result = scorer.score()
        assert result.metrics.value("tremor_index") < 1.0
        assert result.metrics.value("smoothness") > 80.0
        assert result.severity == Severity.NORMAL

    def test_shaky_spiral(self):
        clean = feed(SpiralScorer(), self.spiral_points(), step_ms=50.0).score()
        shaky = feed(SpiralScorer(), self.spiral_points(jitter=8.0), step_ms=50.0).score()
        assert shaky.metrics.value("tremor_index") > clean.metrics.value("tremor_index")
        assert shaky.severity.ordinal >= Severity.MODERATE.ordinal

    def test_too_few_points(self):
        result = feed(SpiralScorer(), self.spiral_points(5), step_ms=50.0).score()
        assert result.insufficient_data
        assert result.metrics.value("tremor_index") == 0.0

    def test_radar(self):
        assert spiral_radar(0.0) == 1.0
        assert spiral_radar(2.5) == pytest.approx(0.5)
        assert spiral_radar(10.0) == 0.0


class TestTappingScorer:
    """Tests for the tapping scorer."""

    @pytest.mark.parametrize("taps,status,severity", [
        (35, "normal", Severity.NORMAL),
        (20, "mild", Severity.MILD),
        (5, "severe", Severity.SEVERE),
    ])
    def test_classification(self, taps, status, severity):
        scorer = feed(TappingScorer(), [1] * taps, step_ms=9000.0 / taps)
        result = scorer.score()
        assert result.metrics.value("taps_per_10s") == pytest.approx(taps)
        assert result.status == status
        assert result.severity == severity

    def test_radar_saturates(self):
        scorer = feed(TappingScorer(), [1] * 60, step_ms=150.0)
        assert scorer.score().radar == 1.0


class TestQuestionnaireScorer:
    """Tests for the questionnaire scorer."""

    def test_all_maximum(self):
        scorer = QuestionnaireScorer()
        scorer.ingest(Sample(0.0, {"q1": 2, "q2": 2, "q3": 2}))
        result = scorer.score()
        assert result.score == 4.0
        assert result.severity == Severity.SEVERE
        assert result.radar == 0.0

    def test_no_symptoms(self):
        scorer = QuestionnaireScorer()
        scorer.ingest(Sample(0.0, {"q1": 0, "q2": 0, "q3": 0}))
        result = scorer.score()
        assert result.score == 0.0
        assert result.severity == Severity.NORMAL
        assert result.radar == 1.0

    def test_partial_answers(self):
        scorer = QuestionnaireScorer()
        scorer.ingest(Sample(0.0, {"q1": 1}))
        result = scorer.score()
        assert result.score == 1.0
        assert result.insufficient_data

    def test_later_answer_replaces_earlier(self):
        scorer = QuestionnaireScorer()
        scorer.ingest(Sample(0.0, {"q1": 2, "q2": 2, "q3": 2}))
        scorer.ingest(Sample(10.0, {"q1": 0, "q2": 0}))
        assert scorer.score().metrics.value("total") == 2

    def test_non_numeric_answers_skipped(self):
        scorer = QuestionnaireScorer()
        scorer.ingest(Sample(0.0, {"q1": None, "q2": "often", "q3": 1}))
        result = scorer.score()

        assert result.metrics.value("answered") == 1
        assert result.insufficient_data
        assert any("non-numeric" in w for w in result.warnings)
