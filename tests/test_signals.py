"""Tests for trait resolution between self-report and extraction."""

import pytest

from alignmatch.matching.signals import NEUTRAL_TRAIT, SignalResolver, SignalSource, trait_closeness
from alignmatch.profile.models import AttachmentStyle, BigFive, SocialPreference, LifestyleIndicators

from conftest import make_user


class TestResolve:
    def test_confident_extraction_wins(self):
        resolver = SignalResolver()
        assert resolver.resolve(40, 80, 0.9) == (80.0, SignalSource.EXTRACTION)

    def test_profile_used_below_threshold(self):
        resolver = SignalResolver()
        assert resolver.resolve(40, 80, 0.3) == (40.0, SignalSource.PROFILE)

    def test_threshold_is_exclusive(self):
        resolver = SignalResolver(confidence_threshold=0.5)
        assert resolver.resolve(40, 80, 0.5) == (40.0, SignalSource.PROFILE)

    def test_low_confidence_extraction_beats_nothing(self):
        resolver = SignalResolver()
        assert resolver.resolve(None, 80, 0.1) == (80.0, SignalSource.EXTRACTION)

    def test_neutral_when_no_data(self):
        resolver = SignalResolver()
        assert resolver.resolve(None, None, None) == (NEUTRAL_TRAIT, SignalSource.DEFAULT)

    def test_custom_threshold(self):
        resolver = SignalResolver(confidence_threshold=0.8)
        assert resolver.resolve(40, 80, 0.7)[0] == 40.0


def test_trait_closeness_never_negative():
    assert trait_closeness(50, 50, 10) == 10
    assert trait_closeness(0, 100, 10) == 0
    assert trait_closeness(0.2, 0.7, 10, scale=1.0) == pytest.approx(5.0)


class TestResolveUser:
    def test_missing_extraction_uses_profile(self):
        user = make_user("u1", extraction=False)
        traits = SignalResolver().resolve_user(user)

        assert traits.big_five["openness"] == 70
        assert traits.sources["openness"] == SignalSource.PROFILE
        assert traits.attachment_style == AttachmentStyle.SECURE

    def test_missing_everything_is_neutral(self):
        user = make_user("u1", extraction=False, big_five=BigFive(), attachment=None)
        traits = SignalResolver().resolve_user(user)

        assert all(value == NEUTRAL_TRAIT for value in traits.big_five.values())
        assert traits.attachment_style is None
        assert traits.source_counts()["default"] >= 6

    def test_confident_extracted_trait_overrides_profile(self):
        user = make_user(
            "u1",
            extraction_overrides={"neuroticism": 80, "neuroticism_confidence": 0.9},
        )
        traits = SignalResolver().resolve_user(user)

        assert traits.big_five["neuroticism"] == 80
        assert traits.sources["neuroticism"] == SignalSource.EXTRACTION

    def test_extracted_attachment_needs_dominance(self):
        user = make_user(
            "u1",
            attachment=None,
            extraction_overrides={"attachment_secure": 0.5, "attachment_anxious": 0.4},
        )
        assert SignalResolver().resolve_user(user).attachment_style is None

        user = make_user(
            "u2",
            attachment=AttachmentStyle.SECURE,
            extraction_overrides={"attachment_secure": 0.1, "attachment_anxious": 0.9},
        )
        assert SignalResolver().resolve_user(user).attachment_style == AttachmentStyle.ANXIOUS

    def test_lifestyle_category_from_confident_extraction(self):
        user = make_user(
            "u1",
            extraction_overrides={
                "lifestyle": LifestyleIndicators(social_preference=SocialPreference.EXTROVERTED),
                "indicators_confidence": 0.9,
            },
        )
        traits = SignalResolver().resolve_user(user)

        assert traits.lifestyle.social_preference == SocialPreference.EXTROVERTED
        # Categories the extraction left empty fall back to the profile
        assert traits.lifestyle.activity_level is not None
