#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Shared encoder input buffer / sample scaling
#

from flac2opus import (
	FoErr,
	FoException
)

import numpy as np


class FoSampleBuffer:

	def __init__(self, channels, max_blocksize):
		self.channels = channels
		self.max_blocksize = max_blocksize
		# Interleaved, what ope_encoder_write_float() expects
		self.data = np.zeros(channels * max_blocksize, dtype=np.float32)

	def fill(self, block, scale):
		"""
		Scale a decoded (frames, channels) integer block into the
		buffer, interleaved, and return the filled region.

		The returned view is only valid until the next fill().
		"""
		if self.data is None:
			raise FoException(FoErr.ERIP, None)

		block = np.asarray(block)
		if block.ndim != 2 or block.shape[1] != self.channels:
			raise FoException(FoErr.EINVBLOCK, None,
					  f"Got block of shape {block.shape}, "
					  f"expected (frames, {self.channels})")

		frames = block.shape[0]
		if frames > self.max_blocksize:
			raise FoException(FoErr.EINVBLOCK, None,
					  f"Block of {frames} samples exceeds {self.max_blocksize}")

		nsamples = frames * self.channels
		# buffer[i*channels + c] = scale * block[i, c]
		out = self.data[:nsamples].reshape(frames, self.channels)
		np.multiply(block, scale, out=out, casting="unsafe")
		return self.data[:nsamples]

	def release(self):
		self.data = None

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		self.release()
		return False
