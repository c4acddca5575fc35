"""
Exception classes for the opeenc module.
"""

class OpeException(Exception):
	"""
	Base exception for all opeenc errors.

	Attributes:
	error_code -- numeric libopusenc/libopus status (first element of args)
	message -- explanation of the error (second element of args)
	"""

	@property
	def error_code(self):
		return self.args[0] if len(self.args) > 0 else None

	@property
	def message(self):
		return self.args[1] if len(self.args) > 1 else str(self)

	def __str__(self):
		return self.message if len(self.args) > 1 else super().__str__()

# More specific exception classes for different error types
class OpeLibraryError(OpeException):
	"""Raised when the libopusenc shared library could not be loaded."""
	pass

class OpeBadArgError(OpeException):
	"""Raised when libopusenc rejected an argument or a ctl value."""
	pass

class OpeCannotOpenError(OpeException):
	"""Raised when the output file could not be created."""
	pass

class OpeWriteError(OpeException):
	"""Raised when writing to or closing the output file failed."""
	pass

class OpeMemoryError(OpeException):
	"""Raised when libopusenc could not allocate memory."""
	pass

class OpeStateError(OpeException):
	"""Raised when the encoder is used after it was destroyed, or too late."""
	pass
