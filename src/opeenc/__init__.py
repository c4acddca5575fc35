"""
Opeenc - Ogg Opus encoding through libopusenc.

This package provides a thin binding for the parts of libopusenc
needed for gapless album encoding:
- Encoder creation on a file, with a comment (tag) list
- Encoder/multistream ctls (bitrate, complexity, muxing delay etc)
- Float sample writing
- Continuing the same logical stream in a new file
- Draining and destroying the encoder

The shared library is loaded on first use, importing this package
never fails because of a missing libopusenc.
"""

from .core import (
	OpeEncoder,
	OPE_OK, OPE_BAD_ARG, OPE_INTERNAL_ERROR, OPE_UNIMPLEMENTED,
	OPE_ALLOC_FAIL, OPE_CANNOT_OPEN, OPE_TOO_LATE, OPE_WRITE_FAIL,
	OPE_CLOSE_FAIL,
	OPE_SET_MUXING_DELAY_REQUEST, OPE_SET_COMMENT_PADDING_REQUEST,
	OPUS_SET_BITRATE_REQUEST, OPUS_SET_VBR_REQUEST,
	OPUS_SET_COMPLEXITY_REQUEST, OPUS_SET_PACKET_LOSS_PERC_REQUEST,
	OPUS_SET_VBR_CONSTRAINT_REQUEST, OPUS_SET_SIGNAL_REQUEST,
	OPUS_SET_LSB_DEPTH_REQUEST, OPUS_SET_EXPERT_FRAME_DURATION_REQUEST,
	OPUS_AUTO, OPUS_BITRATE_MAX, OPUS_SIGNAL_MUSIC, OPUS_FRAMESIZE_20_MS,
	load_library,
)
from .exceptions import (
	OpeException, OpeLibraryError, OpeBadArgError, OpeCannotOpenError,
	OpeWriteError, OpeMemoryError, OpeStateError
)

__version__ = "0.1.0"
__all__ = [
	"OpeEncoder", "load_library",
	"OpeException", "OpeLibraryError", "OpeBadArgError", "OpeCannotOpenError",
	"OpeWriteError", "OpeMemoryError", "OpeStateError"
]
