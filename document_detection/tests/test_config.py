"""
Tests for detector configuration
"""

import threading

import pytest

from document_detection.config import DEFAULT_MAX_WORKING_WIDTH, KNOWN_KEYS, DetectorConfig
from document_detection.errors import InvalidInput
from document_detection.profile import BASE_PROFILE, RESOLUTION_TIERS


@pytest.fixture
def clean_env(monkeypatch):
    """Remove IDDETECT_ variables, restoring them after the test"""
    for key in ("PRESET",) + tuple(k.upper() for k in KNOWN_KEYS):
        # setenv first so teardown also removes values load_dotenv adds
        monkeypatch.setenv("IDDETECT_" + key, "")
        monkeypatch.delenv("IDDETECT_" + key)
    return monkeypatch


class TestDetectorConfig:
    """Tests for DetectorConfig"""

    def test_id1_defaults(self):
        settings = DetectorConfig().snapshot()
        assert settings.preprocessing == 'adaptive'
        assert settings.scoring == 'weighted'
        assert settings.adapt_to_resolution is True
        assert settings.max_working_width == DEFAULT_MAX_WORKING_WIDTH
        assert settings.profile_overrides == {}

    def test_generic_preset(self):
        settings = DetectorConfig(preset='generic').snapshot()
        assert settings.preprocessing == 'static'
        assert settings.scoring == 'largest_quad'
        assert settings.adapt_to_resolution is False

        profile = settings.profile_for(1000, 800)
        assert (profile.canny_low, profile.canny_high) == (50, 150)
        assert profile.min_area_ratio == pytest.approx(10000 / 800000)
        assert profile.max_area_ratio == pytest.approx(500000 / 800000)
        assert profile.epsilon_factor == 0.02

    def test_unknown_preset(self):
        with pytest.raises(InvalidInput):
            DetectorConfig(preset='passport')

    def test_set_and_get(self):
        config = DetectorConfig()
        config.set('canny_threshold1', '40')
        assert config.get('canny_threshold1') == '40'
        assert config.get('missing') is None
        assert config.get('missing', 'fallback') == 'fallback'

    def test_values_are_stored_as_strings(self):
        config = DetectorConfig()
        config.set('min_score', 0.3)
        assert config.get('min_score') == '0.3'
        assert config.snapshot().min_score == pytest.approx(0.3)

    def test_unknown_keys_are_kept(self):
        config = DetectorConfig()
        config.set('ocr_language', 'deu')
        assert config.get('ocr_language') == 'deu'
        config.snapshot()

    @pytest.mark.parametrize("key,value", [
        ('canny_threshold1', 'abc'),
        ('min_area_ratio', ''),
        ('approx_epsilon', 'nan'),
        ('max_contour_area', 'inf'),
        ('preprocessing', 'fancy'),
        ('scoring', 'best'),
        ('adapt_to_resolution', 'maybe'),
        ('', 'value'),
    ])
    def test_malformed_values(self, key, value):
        config = DetectorConfig()
        before = config.get(key)
        with pytest.raises(InvalidInput):
            config.set(key, value)
        assert config.get(key) == before

    def test_invalid_combination_raises_on_profile(self):
        config = DetectorConfig()
        config.set('canny_threshold1', '100')
        config.set('canny_threshold2', '50')
        with pytest.raises(InvalidInput):
            config.snapshot().profile_for(640, 480)

    def test_non_positive_working_width(self):
        config = DetectorConfig({'max_working_width': '0'})
        with pytest.raises(InvalidInput):
            config.snapshot()

    def test_apply_preset_resets_values(self):
        config = DetectorConfig({'canny_threshold1': '40'})
        config.apply_preset('generic')
        assert config.get('canny_threshold1') == '50'
        config.apply_preset('id1')
        assert config.get('canny_threshold1') is None


class TestProfileFor:
    """Tests for building the per-image profile from a snapshot"""

    def test_tier_without_overrides(self):
        profile = DetectorConfig().snapshot().profile_for(627, 470)
        assert profile == RESOLUTION_TIERS[1]

    def test_overrides_win_over_tier(self):
        config = DetectorConfig({'canny_threshold1': '5', 'aspect_ratio_tolerance': '0.8'})
        profile = config.snapshot().profile_for(627, 470)
        assert profile.canny_low == 5
        assert profile.canny_high == RESOLUTION_TIERS[1].canny_high
        assert profile.aspect_tolerance == 0.8

    def test_overrides_win_over_wide_frame_adjustment(self):
        config = DetectorConfig({'min_area_ratio': '0.2'})
        profile = config.snapshot().profile_for(1300, 500)
        assert profile.min_area_ratio == 0.2

    def test_no_tiering_uses_base_profile(self):
        config = DetectorConfig({'adapt_to_resolution': 'false'})
        assert config.snapshot().profile_for(4000, 3000) == BASE_PROFILE

    def test_absolute_area_is_clamped(self):
        """Contour areas larger than the image map to a ratio of 1"""
        config = DetectorConfig({'max_contour_area': '500000'})
        profile = config.snapshot().profile_for(100, 100)
        assert profile.max_area_ratio == 1.0


class TestSnapshotIsolation:
    """Configuration changes never affect a snapshot already taken"""

    def test_snapshot_is_frozen(self):
        config = DetectorConfig()
        settings = config.snapshot()
        config.set('scoring', 'largest_quad')
        assert settings.scoring == 'weighted'
        assert config.snapshot().scoring == 'largest_quad'

    def test_concurrent_set_and_snapshot(self):
        config = DetectorConfig()
        errors = []

        def writer():
            for i in range(200):
                config.set('canny_threshold1', str(10 + i % 20))

        def reader():
            try:
                for _ in range(200):
                    settings = config.snapshot()
                    assert 10 <= settings.profile_overrides.get('canny_low', 10) < 30
            except Exception as exc:  # collected for the main thread
                errors.append(exc)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []


class TestFromEnv:
    """Tests for environment configuration"""

    def test_reads_prefixed_variables(self, clean_env, tmp_path):
        clean_env.setenv("IDDETECT_CANNY_THRESHOLD1", "33")
        clean_env.setenv("IDDETECT_SCORING", "largest_quad")

        config = DetectorConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))
        assert config.get('canny_threshold1') == '33'
        assert config.snapshot().scoring == 'largest_quad'

    def test_preset_from_env(self, clean_env, tmp_path):
        clean_env.setenv("IDDETECT_PRESET", "generic")
        config = DetectorConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))
        assert config.get('preprocessing') == 'static'

    def test_explicit_preset_wins(self, clean_env, tmp_path):
        clean_env.setenv("IDDETECT_PRESET", "generic")
        config = DetectorConfig.from_env(preset='id1', dotenv_path=str(tmp_path / "missing.env"))
        assert config.get('preprocessing') == 'adaptive'

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("IDDETECT_MIN_SCORE=0.4\n")

        config = DetectorConfig.from_env(dotenv_path=str(env_file))
        assert config.snapshot().min_score == pytest.approx(0.4)

    def test_malformed_env_value(self, clean_env, tmp_path):
        clean_env.setenv("IDDETECT_APPROX_EPSILON", "small")
        with pytest.raises(InvalidInput):
            DetectorConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))
