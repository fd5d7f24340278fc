# reposcribe/errors.py


class RepoScribeError(Exception):
    """Base for failures caught at a component's network boundary."""


class AuthCheckFailed(RepoScribeError):
    pass


class LoginExchangeFailed(RepoScribeError):
    pass


class ListFetchFailed(RepoScribeError):
    pass


class GenerationFailed(RepoScribeError):
    pass
