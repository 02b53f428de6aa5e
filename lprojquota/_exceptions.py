class LPQError(Exception):
    """Base class for every fatal reconciliation error.

    ``source`` and ``lineno`` point at the spec line being processed when
    the error was raised, if any.
    """
    def __init__(self, message: str, source: str | None = None, lineno: int | None = None) -> None:
        self.message = message
        self.source = source
        self.lineno = lineno
        super().__init__(message)

    def locate(self, source: str | None, lineno: int | None) -> "LPQError":
        if self.source is None:
            self.source = source
        if self.lineno is None:
            self.lineno = lineno
        return self

    def __str__(self) -> str:
        if self.source is not None and self.lineno is not None:
            return f"{self.source}:{self.lineno}: {self.message}"
        return self.message


class LPQMalformedLineError(LPQError):
    """Raised when a spec line is neither a 5-field nor a 2-field record."""
    def __init__(self, reason: str, source: str | None, lineno: int | None) -> None:
        self.reason = reason
        super().__init__(f"Badly formatted line: {reason}", source, lineno)


class LPQUnknownUserError(LPQError):
    def __init__(self, user: str) -> None:
        self.user = user
        super().__init__(f"User {user} not found")


class LPQUnknownGroupError(LPQError):
    def __init__(self, group: str) -> None:
        self.group = group
        super().__init__(f"Group {group} not found")


class LPQPathOutsideFilesystemError(LPQError):
    def __init__(self, path: str, mountpoint: str) -> None:
        self.path = path
        self.mountpoint = mountpoint
        super().__init__(
            f"Directory `{path}` is not in the lustre filesystem mounted on {mountpoint}"
        )


class LPQNoProjectAssignedError(LPQError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No project id found for {path}")


class LPQNegativeQuotaError(LPQError):
    """Raised when a relative decrease would bring a quota below zero."""
    def __init__(self, current_kb: int, result_kb: int) -> None:
        self.current_kb = current_kb
        self.result_kb = result_kb
        # Truncated towards zero
        self.result_tb = -(-result_kb // 1024**3) if result_kb < 0 else result_kb // 1024**3
        self.current_tb = current_kb // 1024**3
        super().__init__(
            f"Quota would be negative: {self.result_tb} TB ({result_kb} KB), "
            f"current is {self.current_tb} TB ({current_kb} KB)"
        )


class LPQQueryFailedError(LPQError):
    """Raised when a collaborator query returns no usable data."""


class LPQMountUnavailableError(LPQError):
    def __init__(self, fsname: str | None = None) -> None:
        self.fsname = fsname
        name = f"`{fsname}` " if fsname else ""
        super().__init__(f"Lustre filesystem {name}not mounted")


class LPQOperationFailedError(LPQError):
    """Raised by an executor when applying an operation fails."""
    def __init__(self, operation: object, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{type(operation).__name__} failed: {reason}")
