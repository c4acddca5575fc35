#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Helper constants and structures
#

from enum import (
	Enum,
	IntEnum,
	Flag,
	auto
)
from logging import warning

# Version information
__version__ = "0.3"

# Input/output naming
INPUT_EXT_PATTERN = r"\.flac?$"
OUTPUT_EXT = ".opus"

class FoConsts(IntEnum):
	DEF_BITRATE = 160000
	MAX_CHANNELS = 2
	MUXING_DELAY = 48000
	COMMENT_PADDING = 8192
	COMPLEXITY = 10
	PACKET_LOSS_PERC = 0
	MIN_LSB_DEPTH = 8
	MAX_LSB_DEPTH = 24
	MIN_BRATE_PER_CHANNEL = 500
	MAX_BRATE_PER_CHANNEL = 300000

	def __str__(self):
		consts_strmap = {
			FoConsts.DEF_BITRATE:"Default target bitrate (160Kbps)",
			FoConsts.MAX_CHANNELS:"Maximum number of channels (stereo)",
			FoConsts.MUXING_DELAY:"Maximum Ogg muxing delay (48000 samples)",
			FoConsts.COMMENT_PADDING:"Padding after the Opus tags (8192 bytes)",
			FoConsts.COMPLEXITY:"Encoder complexity (10)",
			FoConsts.PACKET_LOSS_PERC:"Expected packet loss (0%)",
			FoConsts.MIN_LSB_DEPTH:"Minimum resolution hint (8 bits)",
			FoConsts.MAX_LSB_DEPTH:"Maximum resolution hint (24 bits)",
			FoConsts.MIN_BRATE_PER_CHANNEL:"Minimum bitrate per channel (500bps)",
			FoConsts.MAX_BRATE_PER_CHANNEL:"Maximum bitrate per channel (300Kbps)",
			}
		return consts_strmap.get(self, "Unknown constant")


class FoOpts(Flag):

	# Keep them powers of 2 so that we can
	# treat them as bits on a bitmask, auto()
	# does that automaticaly
	DEFAULT = 0
	OWARNFATAL = auto()
	OINDEPENDENT = auto()

	def __str__(self):
		opts_strmap = {
			FoOpts.DEFAULT:"Default options",
			FoOpts.OWARNFATAL:"Warnings are fatal",
			FoOpts.OINDEPENDENT:"Independent tracks",
			}
		return opts_strmap.get(self, "Unknown option")

class FoErr(Enum):

	EOK = 0
	EINVPATH = auto()
	ENOTDIR = auto()
	ENOTWRITABLE = auto()
	ENOTEXEC = auto()
	EACCESS = auto()
	EINVFORMAT = auto()
	EINVTAGS = auto()
	EINVGAIN = auto()
	EINCONSISTENT = auto()
	EEXISTS = auto()
	EEMPTY = auto()
	EINVCHANNELS = auto()
	EINVBRATE = auto()
	EINVBLOCK = auto()
	EDECODE = auto()
	EENCODE = auto()
	ERIP = auto()
	EUNKNOWN = auto()

	def __str__(self):
		err_strmap = {
			FoErr.EOK:"No error",
			FoErr.EINVPATH:"Invalid path",
			FoErr.ENOTDIR:"Not a directory",
			FoErr.ENOTWRITABLE:"Not writable",
			FoErr.ENOTEXEC:"Not executable",
			FoErr.EACCESS:"Couldn't access resource",
			FoErr.EINVFORMAT:"Not a FLAC file",
			FoErr.EINVTAGS:"Invalid tags",
			FoErr.EINVGAIN:"Implausible gain",
			FoErr.EINCONSISTENT:"Inconsistent tracks",
			FoErr.EEXISTS:"Output exists",
			FoErr.EEMPTY:"No FLAC files found",
			FoErr.EINVCHANNELS:"Only mono and stereo are supported",
			FoErr.EINVBRATE:"Invalid bitrate",
			FoErr.EINVBLOCK:"Invalid sample block",
			FoErr.EDECODE:"Stream decoding failed",
			FoErr.EENCODE:"Encoding failed",
			FoErr.ERIP:"Object rests in peace",
			}
		return err_strmap.get(self, "Unknown error")

class FoException(Exception):
	def __init__(self, error, entry, msg = None):
		self.error = error
		self.entry = entry
		self.msg = msg

	def __str__(self):
		if self.msg is not None:
			if self.entry is not None:
				return str(self.error) + ": " + self.msg + "\n\t" + str(self.entry)
			return str(self.error) + ": " + self.msg
		if self.entry is not None:
			return str(self.error) + ": \n\t" + str(self.entry)
		else:
			return str(self.error)

# Recoverable conditions go through here, so that OWARNFATAL
# turns them into errors at the point they occur.
def fo_warn(opts, err, entry, msg):
	if FoOpts.OWARNFATAL in opts:
		raise FoException(err, entry, msg)
	warning("%s: %s:\n\t%s", str(err), msg, entry)
