
class FileServerError(Exception):
	"""Base class for every error that ends a single request.
	The string form of the exception is the text sent back to the client."""
	status_code = 500
	message = 'internal server error'

	def __init__(self, innerexception:Exception = None, message:str = None):
		self.innerexception = innerexception
		if message is not None:
			self.message = message
		super().__init__(self.message)

	def __str__(self):
		return self.message


class PathEscape(FileServerError):
	status_code = 400
	message = 'nice try!'

class WriteForbidden(FileServerError):
	status_code = 403
	message = "i'm afraid i can't do that"

class ExistingDirectoryConflict(FileServerError):
	status_code = 400
	message = 'path should not be a existing folder'


class IOFailure(FileServerError):
	"""Wraps the OSError of a failed filesystem call as "can't <action>: <error>" """
	action = 'do that'

	def __init__(self, innerexception:Exception, action:str = None):
		if action is not None:
			self.action = action
		super().__init__(innerexception, "can't %s: %s" % (self.action, innerexception))

class StatFailure(IOFailure):
	action = 'stat item'

	@property
	def status_code(self):
		if isinstance(self.innerexception, FileNotFoundError):
			return 404
		return 500

class ListFailure(IOFailure):
	action = 'list folder entries'

class OpenFailure(IOFailure):
	action = 'open file to be read'

class CreateFailure(IOFailure):
	action = 'create file'

class WriteFailure(IOFailure):
	action = 'write file'


class NotADirectory(Exception):
	def __init__(self, path:str, innerexception:Exception = None):
		self.path = path
		self.innerexception = innerexception
		self.message = 'not a directory: %s' % path
		if innerexception is not None:
			self.message += ' (%s)' % innerexception
		super().__init__(self.message)
