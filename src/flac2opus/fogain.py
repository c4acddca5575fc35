#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# ReplayGain tag parsing and loudness scale calculation
#

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional

from logging import debug
from flac2opus import (
	FoOpts,
	FoErr,
	FoException,
	fo_warn
)

# Gains at or above this are most probably garbage, don't
# apply them.
GAIN_CEILING_DB = 30.0

# ReplayGain uses -18LUFS as its reference, we (and Opus) want
# -23LUFS as target loudness.
GAIN_REF_OFFSET_DB = 5.0

R128_TRACK_GAIN = "R128_TRACK_GAIN"

@dataclass(frozen=True)
class FoGains:
	album_gain: Optional[float] = None	# dB, None if no tag
	track_gain: Optional[float] = None
	tags: List[str] = field(default_factory=list)	# Everything else, in order


class FoGainParser:

	def __init__(self):
		# Compile once, we'll run them on every comment of every track
		self._replaygain_re = re.compile(r"^REPLAYGAIN_", re.IGNORECASE)
		self._album_gain_re = re.compile(r"^REPLAYGAIN_ALBUM_GAIN=(.*)$",
						 re.IGNORECASE | re.DOTALL)
		self._track_gain_re = re.compile(r"^REPLAYGAIN_TRACK_GAIN=(.*)$",
						 re.IGNORECASE | re.DOTALL)
		# Writers usualy append the unit, e.g. "-7.03 dB"
		self._unit_re = re.compile(r"\s*dB\s*$", re.IGNORECASE)

	def _read_gain(self, comment, payload, path):
		gain_str = self._unit_re.sub("", payload).strip()
		try:
			gain = float(gain_str)
		except ValueError as err:
			raise FoException(FoErr.EINVTAGS, path,
					  f"Parsing {comment}") from err
		if not math.isfinite(gain):
			raise FoException(FoErr.EINVTAGS, path,
					  f"Parsing {comment}: not a finite value")
		return gain

	def parse(self, comments, path):
		"""
		Split a track's KEY=value comments into album gain, track gain
		and the comments to carry over. Other REPLAYGAIN_* comments
		are dropped.
		"""
		album_gain = None
		track_gain = None
		tags = list()

		for comment in comments:
			if not self._replaygain_re.match(comment):
				tags.append(comment)
				continue

			match = self._album_gain_re.match(comment)
			if match:
				album_gain = self._read_gain(comment, match.group(1), path)
				continue

			match = self._track_gain_re.match(comment)
			if match:
				track_gain = self._read_gain(comment, match.group(1), path)
				continue

			debug("Dropping %s:\n\t%s", comment, path)

		return FoGains(album_gain, track_gain, tags)


def base_scale(bits_per_sample):
	# Maps a signed integer sample of that depth to [-1, 1)
	return math.ldexp(1.0, -(bits_per_sample - 1))


def gain_to_scale(gain):
	return 10.0 ** ((gain - GAIN_REF_OFFSET_DB) / 20.0)


def calc_scale(bits_per_sample, gain, tag_name, path, opts):
	"""
	Compute the linear factor applied to every sample of a track.

	Args:
		bits_per_sample: Source bit depth of the track
		gain: Selected ReplayGain value in dB, or None
		tag_name: Name of the tag gain came from, for warnings
		path: Track path, for warnings
		opts: FoOpts, OWARNFATAL turns an implausible gain into an error

	Returns:
		A tuple of (scale, applied), applied is True if gain was
		folded into scale.
	"""
	scale = base_scale(bits_per_sample)
	if gain is None:
		return scale, False

	if gain >= GAIN_CEILING_DB:
		fo_warn(opts, FoErr.EINVGAIN, path,
			f"Ignoring {tag_name}={gain:.2f}, not below {GAIN_CEILING_DB:.1f} dB")
		return scale, False

	gained = scale * gain_to_scale(gain)
	# Very negative gains underflow to silence
	if not gained > 0.0:
		fo_warn(opts, FoErr.EINVGAIN, path,
			f"Ignoring {tag_name}={gain:.2f}, scale underflows")
		return scale, False

	return gained, True


def gain_to_q78num(gain):
	# convert float to Q7.8 number: Q = round(f * 2^8)
	return max(-32768, min(32767, int(round(gain * 256.0))))


class FoLoudness:
	"""
	Per track loudness decision: picks album or track gain depending
	on the mode, computes the scale and the output tag set.
	"""

	def __init__(self, opts, parser=None):
		self.options = opts
		self.parser = parser if parser is not None else FoGainParser()

	def process(self, comments, bits_per_sample, path):
		gains = self.parser.parse(comments, path)

		if FoOpts.OINDEPENDENT in self.options:
			gain, tag_name = gains.track_gain, "REPLAYGAIN_TRACK_GAIN"
		else:
			gain, tag_name = gains.album_gain, "REPLAYGAIN_ALBUM_GAIN"

		scale, applied = calc_scale(bits_per_sample, gain, tag_name,
					    path, self.options)

		tags = list(gains.tags)
		if gains.track_gain is not None:
			if applied:
				r128_gain = gains.track_gain - gain
			else:
				r128_gain = gains.track_gain - GAIN_REF_OFFSET_DB
			tags.append(f"{R128_TRACK_GAIN}={gain_to_q78num(r128_gain)}")

		debug("Scale %.9g (%s %s):\n\t%s", scale, tag_name,
		      "applied" if applied else "not applied", path)
		return scale, tags
