import ctypes.util

import numpy as np
import pytest

import opeenc
from opeenc import OpeBadArgError, OpeException, OpeStateError

needs_libopusenc = pytest.mark.skipif(ctypes.util.find_library("opusenc") is None,
				      reason="libopusenc not installed")


def test_exception_carries_code_and_message():
	err = OpeBadArgError(opeenc.OPE_BAD_ARG, "Setting ctl 4002 to 7")
	assert isinstance(err, OpeException)
	assert err.error_code == opeenc.OPE_BAD_ARG
	assert err.message == "Setting ctl 4002 to 7"
	assert str(err) == "Setting ctl 4002 to 7"


def sine(frames, channels=2, rate=48000):
	t = np.arange(frames) / rate
	mono = 0.25 * np.sin(2 * np.pi * 440.0 * t)
	return np.repeat(mono[:, np.newaxis], channels, axis=1).astype(np.float32).ravel()


@needs_libopusenc
def test_continue_in_new_file(tmp_path):
	first = tmp_path / "01.opus"
	second = tmp_path / "02.opus"
	pcm = sine(48000)

	enc = opeenc.OpeEncoder(str(first), ["TITLE=One"], 48000, 2)
	try:
		enc.ctl(opeenc.OPUS_SET_BITRATE_REQUEST, 96000)
		enc.ctl(opeenc.OPE_SET_MUXING_DELAY_REQUEST, 48000)
		enc.write_float(pcm, 48000)
		enc.continue_new_file(str(second), ["TITLE=Two"])
		assert enc.path == str(second)
		enc.write_float(pcm, 48000)
		enc.drain()
	finally:
		enc.destroy()

	for path, title in ((first, b"TITLE=One"), (second, b"TITLE=Two")):
		data = path.read_bytes()
		assert data.startswith(b"OggS")
		assert b"OpusHead" in data[:512]
		assert title in data


@needs_libopusenc
def test_bad_ctl_value(tmp_path):
	enc = opeenc.OpeEncoder(str(tmp_path / "a.opus"), [], 48000, 2)
	try:
		with pytest.raises(OpeException):
			enc.ctl(opeenc.OPUS_SET_COMPLEXITY_REQUEST, 42)
	finally:
		enc.destroy()


@needs_libopusenc
def test_cannot_open(tmp_path):
	with pytest.raises(OpeException):
		opeenc.OpeEncoder(str(tmp_path / "missing" / "a.opus"), [], 48000, 2)


@needs_libopusenc
def test_use_after_destroy(tmp_path):
	enc = opeenc.OpeEncoder(str(tmp_path / "a.opus"), [], 48000, 1)
	enc.destroy()
	with pytest.raises(OpeStateError):
		enc.write_float(np.zeros(960, dtype=np.float32), 960)


@needs_libopusenc
def test_short_buffer(tmp_path):
	enc = opeenc.OpeEncoder(str(tmp_path / "a.opus"), [], 48000, 2)
	try:
		with pytest.raises(OpeBadArgError):
			enc.write_float(np.zeros(10, dtype=np.float32), 10)
	finally:
		enc.destroy()
