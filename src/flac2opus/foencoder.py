#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Gapless Opus encoding across an album
#

from enum import Enum, auto

from logging import (
	debug,
	info,
	warning
)
from flac2opus import (
	FoConsts,
	FoOpts,
	FoErr,
	FoException
)

import opeenc
from opeenc import OpeException

# Relative difference between consecutive scale factors above
# which a track can't share the previous track's stream.
SCALE_TOLERANCE = 0.01

class FoSessionState(Enum):
	UNOPENED = auto()
	OPEN_PRIMARY = auto()
	CONTINUING = auto()
	CLOSED = auto()

	def __str__(self):
		return self.name.lower()


class FoEncoder:

	#
	# HELPERS
	#

	@staticmethod
	def check_bitrate(bitrate, channels):
		if bitrate in (opeenc.OPUS_AUTO, opeenc.OPUS_BITRATE_MAX):
			return
		min_brate = FoConsts.MIN_BRATE_PER_CHANNEL * channels
		max_brate = FoConsts.MAX_BRATE_PER_CHANNEL * channels
		if not min_brate <= bitrate <= max_brate:
			raise FoException(FoErr.EINVBRATE, None,
					  f"{bitrate}bps not in [{min_brate}, {max_brate}]")

	def _lsb_depth(self):
		return max(FoConsts.MIN_LSB_DEPTH,
			   min(FoConsts.MAX_LSB_DEPTH, self.params.bits_per_sample))

	def _configure(self, session, out_path):
		ctls = (
			(opeenc.OPUS_SET_EXPERT_FRAME_DURATION_REQUEST, opeenc.OPUS_FRAMESIZE_20_MS),
			(opeenc.OPE_SET_MUXING_DELAY_REQUEST, FoConsts.MUXING_DELAY),
			(opeenc.OPE_SET_COMMENT_PADDING_REQUEST, FoConsts.COMMENT_PADDING),
			(opeenc.OPUS_SET_VBR_REQUEST, 1),
			(opeenc.OPUS_SET_VBR_CONSTRAINT_REQUEST, 0),
			(opeenc.OPUS_SET_SIGNAL_REQUEST, opeenc.OPUS_SIGNAL_MUSIC),
			(opeenc.OPUS_SET_COMPLEXITY_REQUEST, FoConsts.COMPLEXITY),
			(opeenc.OPUS_SET_PACKET_LOSS_PERC_REQUEST, FoConsts.PACKET_LOSS_PERC),
			(opeenc.OPUS_SET_LSB_DEPTH_REQUEST, self._lsb_depth()),
			(opeenc.OPUS_SET_BITRATE_REQUEST, self.bitrate),
		)
		for request, value in ctls:
			try:
				session.ctl(request, int(value))
			except OpeException as err:
				session.destroy()
				if request == opeenc.OPUS_SET_BITRATE_REQUEST:
					raise FoException(FoErr.EINVBRATE, out_path, str(err)) from err
				raise FoException(FoErr.EENCODE, out_path, str(err)) from err

	def _needs_new_session(self, scale):
		if self.session is None:
			return True
		if FoOpts.OINDEPENDENT in self.options:
			return True
		return abs(scale - self.prev_scale) > SCALE_TOLERANCE * scale

	def _open_primary(self, track, tags):
		if self.params.channels > FoConsts.MAX_CHANNELS:
			raise FoException(FoErr.EINVCHANNELS, track.inp_path,
					  f"Got {self.params.channels} channels")
		self.check_bitrate(self.bitrate, self.params.channels)

		try:
			session = self.encoder_class(track.out_path, tags,
						     self.params.sample_rate,
						     self.params.channels)
		except OpeException as err:
			raise FoException(FoErr.EENCODE, track.out_path, str(err)) from err

		self._configure(session, track.out_path)

		self.session = session
		self.state = FoSessionState.OPEN_PRIMARY
		self.num_sessions += 1
		info("New stream (%d) on:\n\t%s", self.num_sessions, track.out_path)

	def _continue(self, track, tags):
		try:
			self.session.continue_new_file(track.out_path, tags)
		except OpeException as err:
			raise FoException(FoErr.EENCODE, track.out_path, str(err)) from err
		self.state = FoSessionState.CONTINUING
		debug("Continuing stream on:\n\t%s", track.out_path)

	def _close_session(self):
		session = self.session
		self.session = None
		try:
			session.drain()
		except OpeException as err:
			raise FoException(FoErr.EENCODE, session.path, str(err)) from err
		finally:
			session.destroy()

	#
	# OBJECT INSTANTIATION/CLEANUP
	#

	def __init__(self, params, bitrate, opts, encoder_class=None):
		self.params = params
		self.bitrate = bitrate
		self.options = opts
		self.encoder_class = encoder_class if encoder_class is not None else opeenc.OpeEncoder
		self.session = None
		self.prev_scale = None
		self.state = FoSessionState.UNOPENED
		self.num_sessions = 0

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		# On errors don't drain, just release the handle and leave
		# whatever was written in place.
		if self.session is not None:
			if exc_type is None:
				self.close()
			else:
				warning("Aborting stream, leaving partial output:\n\t%s",
					self.session.path)
				self.session.destroy()
				self.session = None
		del self.params
		del self.options
		del self.encoder_class
		del self.session
		# Become a dead encoder
		self.__class__ = _FoRipEncoder
		return False

	#
	# ENTRY POINTS
	#

	def begin_track(self, track, tags, scale):
		"""
		Route output to track, either on a fresh stream or by
		continuing the current one gaplessly.
		"""
		if self.state is FoSessionState.CLOSED:
			raise FoException(FoErr.ERIP, track.inp_path, "Encoder already closed")

		if self._needs_new_session(scale):
			if self.session is not None:
				debug("Scale %.9g -> %.9g, closing stream", self.prev_scale, scale)
				self._close_session()
			self._open_primary(track, tags)
		else:
			self._continue(track, tags)

		self.prev_scale = scale
		return self.state

	def write(self, pcm, frames):
		if self.session is None:
			raise FoException(FoErr.EENCODE, None, "No open stream")
		try:
			self.session.write_float(pcm, frames)
		except OpeException as err:
			raise FoException(FoErr.EENCODE, self.session.path, str(err)) from err

	def close(self):
		if self.session is not None:
			self._close_session()
		self.state = FoSessionState.CLOSED

	def get_state(self):
		return self.state

	def get_num_sessions(self):
		return self.num_sessions

#
# A dead encoder
#

class _FoRipEncoder(FoEncoder):

	def begin_track(self, track, tags, scale):
		raise FoException(FoErr.ERIP, None)

	def write(self, pcm, frames):
		raise FoException(FoErr.ERIP, None)

	def close(self):
		raise FoException(FoErr.ERIP, None)

	def __exit__(self, exc_type, exc_value, traceback):
		return False
