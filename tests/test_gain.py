import logging
import math

import pytest

from flac2opus import FoErr, FoException, FoOpts
from flac2opus.fogain import (
	FoGainParser,
	FoLoudness,
	base_scale,
	calc_scale,
	gain_to_q78num,
)

PATH = "/music/album/01.flac"


def test_parse_splits_gains_and_keeps_order():
	comments = [
		"TITLE=One",
		"REPLAYGAIN_TRACK_GAIN=-6.50 dB",
		"ARTIST=Someone",
		"REPLAYGAIN_ALBUM_GAIN=-7.03 dB",
		"REPLAYGAIN_ALBUM_PEAK=0.98",
		"REPLAYGAIN_TRACK_PEAK=0.91",
		"COMMENT=a=b",
	]
	gains = FoGainParser().parse(comments, PATH)

	assert gains.album_gain == pytest.approx(-7.03)
	assert gains.track_gain == pytest.approx(-6.5)
	assert gains.tags == ["TITLE=One", "ARTIST=Someone", "COMMENT=a=b"]


def test_parse_is_case_insensitive_and_unit_optional():
	gains = FoGainParser().parse(["replaygain_album_gain=+1.25",
				      "ReplayGain_Track_Gain=-2 DB"], PATH)
	assert gains.album_gain == pytest.approx(1.25)
	assert gains.track_gain == pytest.approx(-2.0)
	assert gains.tags == []


def test_parse_without_gains():
	gains = FoGainParser().parse(["TITLE=x"], PATH)
	assert gains.album_gain is None
	assert gains.track_gain is None


def test_last_gain_wins():
	gains = FoGainParser().parse(["REPLAYGAIN_ALBUM_GAIN=-1",
				      "REPLAYGAIN_ALBUM_GAIN=-2"], PATH)
	assert gains.album_gain == pytest.approx(-2.0)


@pytest.mark.parametrize("payload", ["", "dB", "loud", "-3.0 dBfs", "nan", "inf"])
def test_parse_rejects_bad_payload(payload):
	with pytest.raises(FoException) as excinfo:
		FoGainParser().parse([f"REPLAYGAIN_TRACK_GAIN={payload}"], PATH)
	assert excinfo.value.error is FoErr.EINVTAGS
	assert excinfo.value.entry == PATH


def test_base_scale():
	assert base_scale(16) == 2.0 ** -15
	assert base_scale(24) == 2.0 ** -23
	assert base_scale(8) == 2.0 ** -7


def test_calc_scale_applies_gain():
	scale, applied = calc_scale(16, -3.0, "REPLAYGAIN_ALBUM_GAIN", PATH, FoOpts.DEFAULT)
	assert applied
	assert scale == pytest.approx(2.0 ** -15 * 10.0 ** (-8.0 / 20.0))


def test_calc_scale_reference_offset():
	# +5dB of ReplayGain is unity at -23LUFS
	scale, applied = calc_scale(24, 5.0, "REPLAYGAIN_ALBUM_GAIN", PATH, FoOpts.DEFAULT)
	assert applied
	assert scale == pytest.approx(2.0 ** -23)


def test_calc_scale_without_gain():
	scale, applied = calc_scale(16, None, "REPLAYGAIN_ALBUM_GAIN", PATH, FoOpts.DEFAULT)
	assert not applied
	assert scale == 2.0 ** -15


def test_calc_scale_just_below_ceiling():
	scale, applied = calc_scale(16, 29.99, "REPLAYGAIN_ALBUM_GAIN", PATH, FoOpts.DEFAULT)
	assert applied
	assert scale > 2.0 ** -15


def test_calc_scale_ignores_implausible_gain(caplog):
	with caplog.at_level(logging.WARNING):
		scale, applied = calc_scale(16, 30.0, "REPLAYGAIN_ALBUM_GAIN", PATH,
					    FoOpts.DEFAULT)
	assert not applied
	assert scale == 2.0 ** -15
	assert "REPLAYGAIN_ALBUM_GAIN" in caplog.text


def test_calc_scale_implausible_gain_fatal():
	with pytest.raises(FoException) as excinfo:
		calc_scale(16, 42.0, "REPLAYGAIN_TRACK_GAIN", PATH, FoOpts.OWARNFATAL)
	assert excinfo.value.error is FoErr.EINVGAIN


@pytest.mark.parametrize("gain, expected", [
	(0.0, 0),
	(1.0, 256),
	(-1.5, -384),
	(0.5 / 256, 0),
	(200.0, 32767),
	(-200.0, -32768),
])
def test_gain_to_q78num(gain, expected):
	assert gain_to_q78num(gain) == expected


def test_loudness_album_mode():
	comments = ["TITLE=One", "REPLAYGAIN_ALBUM_GAIN=-3.00 dB",
		    "REPLAYGAIN_TRACK_GAIN=-1.00 dB"]
	scale, tags = FoLoudness(FoOpts.DEFAULT).process(comments, 16, PATH)

	assert scale == pytest.approx(2.0 ** -15 * 10.0 ** (-8.0 / 20.0))
	# Track is 2dB louder than the album
	assert tags == ["TITLE=One", "R128_TRACK_GAIN=512"]


def test_loudness_independent_mode():
	comments = ["REPLAYGAIN_ALBUM_GAIN=-3.00", "REPLAYGAIN_TRACK_GAIN=-1.00"]
	scale, tags = FoLoudness(FoOpts.OINDEPENDENT).process(comments, 16, PATH)

	assert scale == pytest.approx(2.0 ** -15 * 10.0 ** (-6.0 / 20.0))
	assert tags == ["R128_TRACK_GAIN=0"]


def test_loudness_independent_mode_ignores_album_gain():
	scale, tags = FoLoudness(FoOpts.OINDEPENDENT).process(
		["REPLAYGAIN_ALBUM_GAIN=-3.00"], 16, PATH)
	assert scale == 2.0 ** -15
	assert tags == []


def test_loudness_track_gain_without_album_gain():
	scale, tags = FoLoudness(FoOpts.DEFAULT).process(
		["REPLAYGAIN_TRACK_GAIN=-1.00"], 24, PATH)
	assert scale == 2.0 ** -23
	assert tags == ["R128_TRACK_GAIN=-1536"]


def test_loudness_no_tags():
	scale, tags = FoLoudness(FoOpts.DEFAULT).process([], 16, PATH)
	assert math.isclose(scale, 2.0 ** -15)
	assert tags == []


def test_calc_scale_ignores_underflowing_gain(caplog):
	with caplog.at_level(logging.WARNING):
		scale, applied = calc_scale(16, -1e6, "REPLAYGAIN_ALBUM_GAIN", PATH,
					    FoOpts.DEFAULT)
	assert not applied
	assert scale == 2.0 ** -15


def test_calc_scale_underflowing_gain_fatal():
	with pytest.raises(FoException) as excinfo:
		calc_scale(16, -1e6, "REPLAYGAIN_ALBUM_GAIN", PATH, FoOpts.OWARNFATAL)
	assert excinfo.value.error is FoErr.EINVGAIN
