#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Album directory scanning / validation
#

import locale
import os
import re
import stat
from dataclasses import dataclass
from os import (
	path,
	scandir,
	access
)
from logging import (
	debug,
	info
)
from flac2opus import (
	INPUT_EXT_PATTERN,
	OUTPUT_EXT,
	FoErr,
	FoException,
	fo_warn
)
from flac2opus.fotrack import (
	FoTrack,
	_FoRipTrack
)

@dataclass
class FoAlbumParams:
	sample_rate: int
	channels: int
	max_blocksize: int
	bits_per_sample: int
	total_samples: int

	@classmethod
	def from_stream_info(cls, stream_info):
		return cls(sample_rate=stream_info.sample_rate,
			   channels=stream_info.channels,
			   max_blocksize=stream_info.max_blocksize,
			   bits_per_sample=stream_info.bits_per_sample,
			   total_samples=stream_info.total_samples)

	# Sample rate and channels must match, the rest only
	# widen so that the shared buffer / encoder setup fits
	# every track.
	def merge(self, stream_info, inp_path, first_path):
		if self.sample_rate != stream_info.sample_rate:
			raise FoException(FoErr.EINCONSISTENT, inp_path,
					  f"Sample rate differs from that in {first_path}")
		if self.channels != stream_info.channels:
			raise FoException(FoErr.EINCONSISTENT, inp_path,
					  f"Num of channels differs from that in {first_path}")
		self.max_blocksize = max(self.max_blocksize, stream_info.max_blocksize)
		self.bits_per_sample = max(self.bits_per_sample, stream_info.bits_per_sample)
		self.total_samples += stream_info.total_samples

	def __str__(self):
		return (f"max_blocksize = {self.max_blocksize}, "
			f"sample_rate = {self.sample_rate}, "
			f"channels = {self.channels}, "
			f"bits_per_sample = {self.bits_per_sample}, "
			f"total_samples = {self.total_samples}")


class FoAlbum:

	_input_re = re.compile(INPUT_EXT_PATTERN, re.IGNORECASE)

	#
	# HELPERS
	#

	@staticmethod
	def _trim(dir_path):
		trimmed = dir_path.rstrip(os.sep)
		# Don't turn "/" into ""
		return trimmed if trimmed else dir_path

	@staticmethod
	def _check_out_dir(out_dir):
		# Stat follows symbolic links.
		try:
			st = os.stat(out_dir)
		except OSError as err:
			raise FoException(FoErr.EINVPATH, out_dir, err.strerror) from err

		if not stat.S_ISDIR(st.st_mode):
			raise FoException(FoErr.ENOTDIR, out_dir)

		# Directory does not have to be readable, that is only needed
		# for listing it and we never list out_dir.
		if not access(out_dir, os.W_OK):
			raise FoException(FoErr.ENOTWRITABLE, out_dir)
		if not access(out_dir, os.X_OK):
			raise FoException(FoErr.ENOTEXEC, out_dir)

	@staticmethod
	def _list_inp_dir(inp_dir):
		try:
			with scandir(inp_dir) as it:
				names = [entry.name for entry in it]
		except OSError as err:
			raise FoException(FoErr.EACCESS, inp_dir, err.strerror) from err
		# Ordered as per current locale, same as alphasort(3)
		return sorted(names, key=locale.strxfrm)

	def _check_candidate(self, inp_path):
		# Stat follows symbolic links, a dangling one is an error.
		try:
			st = os.stat(inp_path)
		except OSError as err:
			raise FoException(FoErr.EACCESS, inp_path, err.strerror) from err

		if not stat.S_ISREG(st.st_mode):
			fo_warn(self.options, FoErr.EINVFORMAT, inp_path,
				"Skipping, not a regular file")
			return None

		if not access(inp_path, os.R_OK):
			fo_warn(self.options, FoErr.EACCESS, inp_path,
				"Skipping, not readable")
			return None

		try:
			return FoTrack.probe(inp_path)
		except FoException as err:
			fo_warn(self.options, FoErr.EINVFORMAT, inp_path,
				f"Skipping, not a FLAC file ({err.msg})")
			return None

	def _scan(self):
		tracks = list()
		params = None
		out_paths = set()

		for name in self._list_inp_dir(self.inp_dir):
			match = self._input_re.search(name)
			if match is None:
				debug("Ignoring %s", name)
				continue

			inp_path = path.join(self.inp_dir, name)
			stream_info = self._check_candidate(inp_path)
			if stream_info is None:
				continue

			out_path = path.join(self.out_dir, name[:match.start()] + OUTPUT_EXT)
			if path.lexists(out_path):
				raise FoException(FoErr.EEXISTS, out_path)
			if out_path in out_paths:
				raise FoException(FoErr.EEXISTS, out_path,
						  f"Also the output of {inp_path}")
			out_paths.add(out_path)

			if params is None:
				params = FoAlbumParams.from_stream_info(stream_info)
			else:
				params.merge(stream_info, inp_path, tracks[0].inp_path)

			debug("Got track (%s):\n\t%s", stream_info, inp_path)
			tracks.append(FoTrack(inp_path, out_path, stream_info))
			del stream_info, out_path

		if not tracks:
			raise FoException(FoErr.EEMPTY, self.inp_dir)

		return tracks, params

	#
	# OBJECT INSTANTIATION/CLEANUP
	#

	def __init__(self, out_dir, inp_dir, opts):
		self.options = opts
		self.out_dir = self._trim(out_dir)
		self.inp_dir = self._trim(inp_dir)

		self._check_out_dir(self.out_dir)
		self.tracks, self.params = self._scan()

		info("Album ready: %s", self.params)
		for track in self.tracks:
			info("%s\t%s", track.inp_path, track.out_path)

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		# Tracks are normaly retired by the worker, catch
		# any left behind.
		for track in self.tracks:
			if not isinstance(track, _FoRipTrack):
				track.__exit__(exc_type, exc_value, traceback)
		self.tracks.clear()
		del self.tracks
		del self.params
		del self.options
		# Become a dead album
		self.__class__ = _FoRipAlbum
		return False

	#
	# ENTRY POINTS
	#

	def get_tracks(self):
		return self.tracks

	def get_params(self):
		return self.params

	def get_num_tracks(self):
		return len(self.tracks)

#
# A dead album
#

class _FoRipAlbum(FoAlbum):

	def get_tracks(self):
		raise FoException(FoErr.ERIP, None)

	def get_params(self):
		raise FoException(FoErr.ERIP, None)

	def get_num_tracks(self):
		raise FoException(FoErr.ERIP, None)

	def __exit__(self, exc_type, exc_value, traceback):
		return False
