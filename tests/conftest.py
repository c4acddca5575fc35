#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Shared test helpers
#

import os

import numpy as np
import pytest
import soundfile as sf
from mutagen.flac import FLAC

from flac2opus.fotrack import FoTrack
from opeenc import OpeBadArgError, OPE_BAD_ARG

FLAC_SUBTYPES = {
	16: "PCM_16",
	24: "PCM_24",
}


def write_flac(path, samples, rate=44100, bits=16, comments=()):
	"""
	Write native integer samples, shape (frames,) or (frames, channels),
	to a FLAC file and tag it with KEY=value comments.
	"""
	samples = np.asarray(samples, dtype=np.int32)
	if samples.ndim == 1:
		samples = samples[:, np.newaxis]
	# libsndfile takes int32 input as left-justified
	sf.write(str(path), samples << (32 - bits), rate,
		 format="FLAC", subtype=FLAC_SUBTYPES[bits])

	if comments:
		flac = FLAC(str(path))
		if flac.tags is None:
			flac.add_tags()
		for comment in comments:
			key, value = comment.split("=", 1)
			flac.tags.append((key, value))
		flac.save()
	return str(path)


def write_empty_flac(path, rate=44100, channels=2, bits=16, blocksize=4096):
	"""
	Write a FLAC file holding only STREAMINFO, with zero samples and
	no MD5 signature.
	"""
	packed = (rate << 44) | ((channels - 1) << 41) | ((bits - 1) << 36)
	streaminfo = (blocksize.to_bytes(2, "big") * 2
		      + bytes(6)			# min/max frame size, unknown
		      + packed.to_bytes(8, "big")
		      + bytes(16))			# MD5
	# Last metadata block, type 0, 34 bytes
	header = bytes([0x80]) + len(streaminfo).to_bytes(3, "big")
	with open(path, "wb") as f:
		f.write(b"fLaC" + header + streaminfo)
	return str(path)


def ramp(frames, channels=2, start=0):
	"""A distinct value on every sample, fits in 16 bits."""
	values = np.arange(start, start + frames * channels, dtype=np.int32)
	values = (values % 60000) - 30000
	return values.reshape(frames, channels)


class FakeEncoder:
	"""
	Records what FoEncoder asks of an opeenc.OpeEncoder, interleaved
	samples are kept per output file.
	"""

	created = []
	fail_ctl = None

	def __init__(self, path, comments, rate, channels, family=0):
		self.path = path
		self.rate = rate
		self.channels = channels
		self.comments = {path: list(comments)}
		self.files = {path: []}
		self.ctls = dict()
		self.drained = False
		self.destroyed = False
		type(self).created.append(self)

	def ctl(self, request, value):
		if request == self.fail_ctl:
			raise OpeBadArgError(OPE_BAD_ARG, f"ctl {request} rejected")
		self.ctls[request] = value

	def continue_new_file(self, path, comments):
		self.path = path
		self.comments[path] = list(comments)
		self.files[path] = []

	def write_float(self, pcm, frames):
		self.files[self.path].append(np.array(pcm[:frames * self.channels]))

	def drain(self):
		self.drained = True

	def destroy(self):
		self.destroyed = True

	def samples(self, path):
		chunks = self.files[path]
		if not chunks:
			return np.zeros(0, dtype=np.float32)
		return np.concatenate(chunks)


@pytest.fixture
def fake_encoder():
	# Fresh class per test so that recordings don't leak
	class Recorder(FakeEncoder):
		created = []
		fail_ctl = None
	return Recorder


@pytest.fixture
def fake_decoder():
	"""
	Returns a factory for decoder classes that take stream info from the
	real file but serve the given (comments, blocks) per file name.
	"""
	def factory(contents):
		class FakeDecoder:
			def __init__(self, path):
				self.path = path
				self.stream_info = FoTrack.probe(path)
				self.comments, self._blocks = contents[os.path.basename(path)]

			def __enter__(self):
				return self

			def __exit__(self, exc_type, exc_value, traceback):
				return False

			def get_stream_info(self):
				return self.stream_info

			def get_comments(self):
				return self.comments

			def blocks(self):
				return iter(self._blocks)
		return FakeDecoder
	return factory


@pytest.fixture
def album_dirs(tmp_path):
	inp_dir = tmp_path / "in"
	out_dir = tmp_path / "out"
	inp_dir.mkdir()
	out_dir.mkdir()
	return str(out_dir), str(inp_dir)
