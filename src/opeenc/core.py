"""
Core functionality for the opeenc module.
"""

import ctypes
import ctypes.util
import os
import threading

import numpy as np

from .exceptions import (
	OpeException, OpeLibraryError, OpeBadArgError, OpeCannotOpenError,
	OpeWriteError, OpeMemoryError, OpeStateError
)

# libopusenc status codes (opusenc.h)
OPE_OK = 0
OPE_BAD_ARG = -11
OPE_INTERNAL_ERROR = -13
OPE_UNIMPLEMENTED = -15
OPE_ALLOC_FAIL = -17
OPE_CANNOT_OPEN = -30
OPE_TOO_LATE = -31
OPE_INVALID_PICTURE = -32
OPE_INVALID_ICON = -33
OPE_WRITE_FAIL = -34
OPE_CLOSE_FAIL = -35

# libopus status codes that ctls may pass through
OPUS_BAD_ARG = -1
OPUS_ALLOC_FAIL = -7

# libopusenc ctls
OPE_SET_MUXING_DELAY_REQUEST = 14002
OPE_SET_COMMENT_PADDING_REQUEST = 14004

# libopus encoder ctls (forwarded by ope_encoder_ctl)
OPUS_SET_BITRATE_REQUEST = 4002
OPUS_SET_VBR_REQUEST = 4006
OPUS_SET_COMPLEXITY_REQUEST = 4010
OPUS_SET_PACKET_LOSS_PERC_REQUEST = 4014
OPUS_SET_VBR_CONSTRAINT_REQUEST = 4020
OPUS_SET_SIGNAL_REQUEST = 4024
OPUS_SET_LSB_DEPTH_REQUEST = 4036
OPUS_SET_EXPERT_FRAME_DURATION_REQUEST = 4040

OPUS_AUTO = -1000
OPUS_BITRATE_MAX = -1
OPUS_SIGNAL_MUSIC = 3002
OPUS_FRAMESIZE_20_MS = 5004

# Error code to exception mapping
_ERROR_MAPPING = {
	OPE_BAD_ARG: OpeBadArgError,
	OPE_INVALID_PICTURE: OpeBadArgError,
	OPE_INVALID_ICON: OpeBadArgError,
	OPUS_BAD_ARG: OpeBadArgError,
	OPE_CANNOT_OPEN: OpeCannotOpenError,
	OPE_WRITE_FAIL: OpeWriteError,
	OPE_CLOSE_FAIL: OpeWriteError,
	OPE_ALLOC_FAIL: OpeMemoryError,
	OPUS_ALLOC_FAIL: OpeMemoryError,
	OPE_TOO_LATE: OpeStateError,
}

_lib = None
_lib_lock = threading.Lock()


def _bind(lib):
	lib.ope_strerror.argtypes = [ctypes.c_int]
	lib.ope_strerror.restype = ctypes.c_char_p

	lib.ope_comments_create.argtypes = []
	lib.ope_comments_create.restype = ctypes.c_void_p
	lib.ope_comments_add_string.argtypes = [ctypes.c_void_p, ctypes.c_char_p]
	lib.ope_comments_add_string.restype = ctypes.c_int
	lib.ope_comments_destroy.argtypes = [ctypes.c_void_p]
	lib.ope_comments_destroy.restype = None

	lib.ope_encoder_create_file.argtypes = [ctypes.c_char_p, ctypes.c_void_p,
						ctypes.c_int32, ctypes.c_int, ctypes.c_int,
						ctypes.POINTER(ctypes.c_int)]
	lib.ope_encoder_create_file.restype = ctypes.c_void_p
	lib.ope_encoder_continue_new_file.argtypes = [ctypes.c_void_p, ctypes.c_char_p,
						      ctypes.c_void_p]
	lib.ope_encoder_continue_new_file.restype = ctypes.c_int
	lib.ope_encoder_write_float.argtypes = [ctypes.c_void_p, ctypes.POINTER(ctypes.c_float),
						ctypes.c_int]
	lib.ope_encoder_write_float.restype = ctypes.c_int
	lib.ope_encoder_drain.argtypes = [ctypes.c_void_p]
	lib.ope_encoder_drain.restype = ctypes.c_int
	lib.ope_encoder_destroy.argtypes = [ctypes.c_void_p]
	lib.ope_encoder_destroy.restype = None
	# ope_encoder_ctl() is variadic, leave argtypes unset and
	# pass properly typed ctypes values on each call.
	lib.ope_encoder_ctl.restype = ctypes.c_int
	return lib


def load_library():
	"""
	Load and bind libopusenc, once per process.

	The OPUSENC_LIBRARY environment variable may point to a specific
	shared object, otherwise the system search path is used.

	Raises:
		OpeLibraryError: If the library could not be found or loaded
	"""
	global _lib
	with _lib_lock:
		if _lib is not None:
			return _lib

		candidates = []
		explicit = os.environ.get("OPUSENC_LIBRARY")
		if explicit:
			candidates.append(explicit)
		found = ctypes.util.find_library("opusenc")
		if found:
			candidates.append(found)
		candidates.append("libopusenc.so.0")

		errors = []
		for candidate in candidates:
			try:
				_lib = _bind(ctypes.CDLL(candidate))
				return _lib
			except OSError as err:
				errors.append(f"{candidate}: {err}")
		raise OpeLibraryError(OPE_INTERNAL_ERROR,
				      "Could not load libopusenc. Tried:\n\t" + "\n\t".join(errors))


def _strerror(lib, code):
	msg = lib.ope_strerror(code)
	return msg.decode("utf-8", "replace") if msg else "unknown error"


def _raise_for(lib, code, what):
	exception_class = _ERROR_MAPPING.get(code, OpeException)
	raise exception_class(code, f"{what}: {_strerror(lib, code)}")


def _encode_path(path):
	return os.fsencode(path)


class _OpeComments:
	"""
	An OggOpusComments object built from KEY=value strings, only
	alive inside a with block.
	"""

	def __init__(self, lib, comments):
		self._lib = lib
		self._handle = lib.ope_comments_create()
		if not self._handle:
			raise OpeMemoryError(OPE_ALLOC_FAIL, "Could not allocate comments")
		for comment in comments or ():
			ret = lib.ope_comments_add_string(self._handle, comment.encode("utf-8"))
			if ret != OPE_OK:
				lib.ope_comments_destroy(self._handle)
				self._handle = None
				_raise_for(lib, ret, f"Adding comment {comment!r}")

	def __enter__(self):
		return self._handle

	def __exit__(self, exc_type, exc_value, traceback):
		if self._handle:
			self._lib.ope_comments_destroy(self._handle)
		self._handle = None
		return False


class OpeEncoder:
	"""
	An OggOpusEnc bound to an output file.

	libopusenc copies the comments when creating the encoder and when
	continuing to a new file, so comment lists are only borrowed.
	"""

	def __init__(self, path, comments, rate, channels, family=0):
		"""
		Create an encoder writing to path.

		Args:
			path: Output file path
			comments: List of KEY=value strings for the Opus tags
			rate: Input sample rate in Hz
			channels: Number of interleaved input channels
			family: Channel mapping family (0 for mono/stereo)

		Raises:
			OpeLibraryError: If libopusenc is not available
			OpeCannotOpenError: If the output file could not be created
			OpeException: For other errors
		"""
		self._lib = load_library()
		self.path = path
		self.channels = channels
		self._handle = None

		err = ctypes.c_int(OPE_OK)
		with _OpeComments(self._lib, comments) as handle:
			enc = self._lib.ope_encoder_create_file(_encode_path(path), handle,
								ctypes.c_int32(rate), channels,
								family, ctypes.byref(err))
		if not enc or err.value != OPE_OK:
			if enc:
				self._lib.ope_encoder_destroy(enc)
			_raise_for(self._lib, err.value, f"Encoding to file {path}")
		self._handle = enc

	def _check(self):
		if not self._handle:
			raise OpeStateError(OPE_TOO_LATE, "Encoder already destroyed")

	def ctl(self, request, value):
		self._check()
		ret = self._lib.ope_encoder_ctl(ctypes.c_void_p(self._handle),
						ctypes.c_int(request),
						ctypes.c_int32(value))
		if ret != OPE_OK:
			_raise_for(self._lib, ret, f"Setting ctl {request} to {value}")

	def continue_new_file(self, path, comments):
		self._check()
		with _OpeComments(self._lib, comments) as handle:
			ret = self._lib.ope_encoder_continue_new_file(self._handle,
								      _encode_path(path),
								      handle)
		if ret != OPE_OK:
			_raise_for(self._lib, ret, f"Encoding to file {path}")
		self.path = path

	def write_float(self, pcm, frames):
		"""
		Write frames interleaved float samples from pcm.
		"""
		self._check()
		pcm = np.ascontiguousarray(pcm, dtype=np.float32)
		if pcm.size < frames * self.channels:
			raise OpeBadArgError(OPE_BAD_ARG,
					     f"Buffer holds {pcm.size} samples, need {frames * self.channels}")
		ptr = pcm.ctypes.data_as(ctypes.POINTER(ctypes.c_float))
		ret = self._lib.ope_encoder_write_float(self._handle, ptr, frames)
		if ret != OPE_OK:
			_raise_for(self._lib, ret, "Encoding aborted")

	def drain(self):
		self._check()
		ret = self._lib.ope_encoder_drain(self._handle)
		if ret != OPE_OK:
			_raise_for(self._lib, ret, f"Draining encoder for {self.path}")

	def destroy(self):
		if self._handle:
			self._lib.ope_encoder_destroy(self._handle)
		self._handle = None
