#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# FLAC decoding, one file at a time
#

import hashlib

from logging import debug
from flac2opus import (
	FoErr,
	FoException
)
from flac2opus.fotrack import FoTrack

import numpy as np
import soundfile as sf


class FoDecoder:
	"""
	Decodes one FLAC file. Metadata (stream info and comments) is
	available right after construction, samples come from blocks(),
	a generator that can only be consumed once.

	Each block is an int32 array of shape (frames, channels) holding
	the file's native signed integer samples.
	"""

	#
	# HELPERS
	#

	# libFLAC hashes interleaved little-endian samples, using
	# the minimum number of bytes for the bit depth.
	@staticmethod
	def _md5_bytes(block, bits_per_sample):
		nbytes = (bits_per_sample + 7) // 8
		raw = np.ascontiguousarray(block, dtype="<i4").view(np.uint8)
		return raw.reshape(-1, 4)[:, :nbytes].tobytes()

	def _fail(self, msg, err=None):
		exc = FoException(FoErr.EDECODE, self.path, msg)
		if err is not None:
			raise exc from err
		raise exc

	#
	# OBJECT INSTANTIATION/CLEANUP
	#

	def __init__(self, path):
		self.path = path
		self._consumed = False
		self._sfile = None

		flac = FoTrack.read_flac(path)
		self.stream_info = FoTrack.stream_info_from(flac)
		if flac.tags is not None:
			# Iterating a VCommentDict gives (key, value) pairs in file order
			self.comments = [f"{key}={value}" for key, value in flac.tags]
		else:
			self.comments = list()
		del flac

		try:
			self._sfile = sf.SoundFile(path)
		except (sf.SoundFileError, RuntimeError) as err:
			self._fail(f"Initializing decoder: {err}", err)

		if self._sfile.channels != self.stream_info.channels:
			self._sfile.close()
			self._fail(f"Decoder reports {self._sfile.channels} channels, "
				   f"STREAMINFO {self.stream_info.channels}")
		if self._sfile.samplerate != self.stream_info.sample_rate:
			self._sfile.close()
			self._fail(f"Decoder reports {self._sfile.samplerate} Hz, "
				   f"STREAMINFO {self.stream_info.sample_rate} Hz")

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		if self._sfile is not None:
			self._sfile.close()
		self._sfile = None
		self.comments = None
		return False

	#
	# ENTRY POINTS
	#

	def get_stream_info(self):
		return self.stream_info

	def get_comments(self):
		return self.comments

	def blocks(self):
		if self._consumed:
			raise FoException(FoErr.ERIP, self.path, "Sample blocks already consumed")
		self._consumed = True
		return self._blocks()

	def _blocks(self):
		bits = self.stream_info.bits_per_sample
		# libsndfile left-justifies samples to 32 bits
		shift = 32 - bits
		blocksize = max(1, self.stream_info.max_blocksize)
		md5 = hashlib.md5() if self.stream_info.md5_signature else None
		frames = 0

		# libsndfile fails seeking in a file without frames, there
		# is nothing to read anyway.
		if self._sfile.frames == 0:
			blocks = ()
		else:
			blocks = self._sfile.blocks(blocksize=blocksize, dtype="int32",
						     always_2d=True)

		try:
			for block in blocks:
				if shift:
					np.right_shift(block, shift, out=block)
				if md5 is not None:
					md5.update(self._md5_bytes(block, bits))
				frames += block.shape[0]
				yield block
		except (sf.SoundFileError, RuntimeError) as err:
			self._fail(f"Decoding: {err}", err)

		if self.stream_info.total_samples and frames != self.stream_info.total_samples:
			self._fail(f"Got {frames} samples, "
				   f"STREAMINFO says {self.stream_info.total_samples}")

		if md5 is not None:
			signature = int.from_bytes(md5.digest(), "big")
			if signature != self.stream_info.md5_signature:
				self._fail("MD5 signature mismatch")

		debug("Decoded %d samples:\n\t%s", frames, self.path)
