#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Handling of individual tracks
#

import os
from dataclasses import dataclass

from logging import debug
from flac2opus import (
	FoErr,
	FoException
)

import magic

# For metadata handling
from mutagen import MutagenError
from mutagen.flac import FLAC

FLAC_MIMETYPES = ("audio/flac", "audio/x-flac")

@dataclass(frozen=True)
class FoStreamInfo:
	sample_rate: int
	channels: int
	bits_per_sample: int
	max_blocksize: int
	total_samples: int
	md5_signature: int = 0

	def __str__(self):
		return (f"Sample rate: {self.sample_rate} Hz, "
			f"Channels: {self.channels}, "
			f"Bit depth: {self.bits_per_sample} bit, "
			f"Max block size: {self.max_blocksize}, "
			f"Total samples: {self.total_samples}")


class FoTrack:

	#
	# HELPERS
	#

	@staticmethod
	def _check_type(path):
		try:
			mimetype = magic.from_file(path, mime=True)
		except (magic.MagicException, OSError) as err:
			raise FoException(FoErr.EINVFORMAT, path, str(err)) from err

		if mimetype not in FLAC_MIMETYPES:
			raise FoException(FoErr.EINVFORMAT, path, f"Got {mimetype}")

	@staticmethod
	def read_flac(path):
		try:
			return FLAC(path)
		except MutagenError as err:
			raise FoException(FoErr.EINVFORMAT, path, str(err)) from err

	@staticmethod
	def stream_info_from(flac):
		info = flac.info
		return FoStreamInfo(sample_rate=info.sample_rate,
				    channels=info.channels,
				    bits_per_sample=info.bits_per_sample,
				    max_blocksize=info.max_blocksize,
				    total_samples=info.total_samples,
				    md5_signature=getattr(info, "md5_signature", 0))

	# Header-only parse, no decoding happens here
	@staticmethod
	def probe(path):
		FoTrack._check_type(path)
		return FoTrack.stream_info_from(FoTrack.read_flac(path))

	#
	# OBJECT INSTANTIATION/CLEANUP
	#

	def __init__(self, inp_path, out_path, stream_info):
		self.inp_path = inp_path
		self.out_path = out_path
		self.stream_info = stream_info

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		debug("Done with track:\n\t%s", self.inp_path)
		del self.inp_path
		del self.out_path
		del self.stream_info
		# Become a dead track
		self.__class__ = _FoRipTrack
		return False

	def __str__(self):
		return self.inp_path

	#
	# ENTRY POINTS
	#

	def get_name(self):
		return os.path.basename(self.inp_path)

	def get_stream_info(self):
		return self.stream_info

#
# A dead track that throws exceptions evrytime
# one of its functions are called
#

class _FoRipTrack(FoTrack):

	def get_name(self):
		raise FoException(FoErr.ERIP, None)

	def get_stream_info(self):
		raise FoException(FoErr.ERIP, None)

	def __str__(self):
		return "<dead track>"

	def __exit__(self, exc_type, exc_value, traceback):
		return False
