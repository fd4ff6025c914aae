"""Error types raised by the DAM integration."""


class DamError(Exception):
    """Base class for all DAM integration failures."""


class AuthError(DamError):
    """Login failed or the session credential was rejected."""

    def __init__(self, reason: str, remote_status: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.remote_status = remote_status


class AuthenticationRequired(AuthError):
    """The DAM rejected a request made with the current credential."""


class OperationCancelled(DamError):
    """The caller cancelled before the next remote call was issued."""


class RemoteError(DamError):
    """Network failure, non-2xx response or malformed payload."""

    def __init__(
        self,
        message: str,
        *,
        remote_status: int | None = None,
        error_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.remote_status = remote_status
        self.error_code = error_code


class TagCreationFailed(RemoteError):
    """A tag could not be found or created."""

    def __init__(self, name: str, *, remote_status: int | None = None) -> None:
        super().__init__(
            f"Failed to create or find tag: {name}", remote_status=remote_status
        )
        self.name = name


class TagValueCreationFailed(RemoteError):
    """A tag value could not be found or created."""

    def __init__(
        self, tag_name: str, value: str, *, remote_status: int | None = None
    ) -> None:
        super().__init__(
            f"Failed to create or find value {value!r} for tag: {tag_name}",
            remote_status=remote_status,
        )
        self.tag_name = tag_name
        self.value = value


class AssignmentFailed(RemoteError):
    """The remote assignment call for a media item failed."""

    def __init__(self, media_id: str, *, remote_status: int | None = None) -> None:
        super().__init__(
            f"Failed to assign tags to media item: {media_id}",
            remote_status=remote_status,
        )
        self.media_id = media_id
