from hypothesis import given, settings, strategies as st

from hls.renditions import BANDWIDTH_OVERHEAD, parse_bitrate, plan_renditions


class TestParseBitrate:
    def test_kilo_suffix(self):
        assert parse_bitrate("700k") == 700_000
        assert parse_bitrate(" 1200K ") == 1_200_000

    def test_plain_number(self):
        assert parse_bitrate("96000") == 96_000

    def test_leading_integer_only(self):
        assert parse_bitrate("1.5k") == 1000

    def test_garbage_is_zero(self):
        assert parse_bitrate("fast") == 0
        assert parse_bitrate("") == 0
        assert parse_bitrate(None) == 0

    @given(n=st.integers(min_value=0, max_value=10**7))
    @settings(max_examples=100)
    def test_k_suffix_scales_by_thousand(self, n):
        assert parse_bitrate(f"{n}k") == n * 1000

    @given(text=st.text())
    @settings(max_examples=200)
    def test_never_raises(self, text):
        assert isinstance(parse_bitrate(text), int)


class TestPlanRenditions:
    def test_default_ladder(self):
        plan = plan_renditions()
        assert [r.name for r in plan] == ["360p", "540p", "720p", "1080p"]
        assert [r.resolution for r in plan] == ["640x360", "960x540", "1280x720", "1920x1080"]
        assert [r.audio_bitrate for r in plan] == ["96k", "128k", "128k", "160k"]
        assert [r.bandwidth for r in plan] == [896_000, 1_428_000, 2_428_000, 4_460_000]

    def test_bandwidth_strictly_increasing(self):
        bandwidths = [r.bandwidth for r in plan_renditions()]
        assert bandwidths == sorted(bandwidths)
        assert len(set(bandwidths)) == len(bandwidths)

    def test_override_one_tier(self):
        plan = plan_renditions({"720p": "3000k"})
        by_name = {r.name: r for r in plan}
        assert by_name["720p"].video_bitrate == "3000k"
        assert by_name["720p"].bandwidth == 3_000_000 + 128_000 + BANDWIDTH_OVERHEAD
        assert by_name["360p"].video_bitrate == "700k"

    def test_malformed_override_degrades_to_zero_video(self):
        by_name = {r.name: r for r in plan_renditions({"540p": "lots"})}
        assert by_name["540p"].bandwidth == 128_000 + BANDWIDTH_OVERHEAD

    @given(
        vbr=st.one_of(st.integers(min_value=1, max_value=50_000).map(lambda n: f"{n}k"), st.text(max_size=8)),
    )
    @settings(max_examples=100)
    def test_bandwidth_formula(self, vbr):
        for r in plan_renditions({"360p": vbr, "1080p": vbr}):
            assert r.bandwidth == parse_bitrate(r.video_bitrate) + parse_bitrate(r.audio_bitrate) + BANDWIDTH_OVERHEAD
