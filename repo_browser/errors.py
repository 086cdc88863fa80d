class GitServerError(Exception):
    pass


class InvalidRequestError(GitServerError):
    pass


class InvalidLocationError(InvalidRequestError):
    """The requested path is malformed or points outside the repository roots."""


class RepositoryAccessError(GitServerError):
    """The object store could not be opened or read."""


class RepositoryNotFoundError(RepositoryAccessError):
    pass


class CorruptRepositoryError(RepositoryAccessError):
    pass


class NoBranchesError(GitServerError):
    pass
