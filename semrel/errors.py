class SemrelError(Exception):
    """Fatal error that aborts a release run."""


class MalformedVersionTag(SemrelError, ValueError):
    def __init__(self, name: str):
        super().__init__(f"malformed version tag: {name!r}")
        self.name = name


class ReferenceNotFound(SemrelError):
    def __init__(self, branch: str, reference: str, reason: str = "history exhausted"):
        super().__init__(f"reference {reference} not found on {branch!r} ({reason})")
        self.branch = branch
        self.reference = reference
        self.reason = reason


class PreconditionFailed(SemrelError):
    pass


class MissingReleaseBranches(PreconditionFailed):
    def __init__(self):
        super().__init__(
            "Cannot find release branches (e.g. release/1.0.x). "
            "Create at least one release branch manually"
        )


class MissingVersionTags(PreconditionFailed):
    def __init__(self):
        super().__init__(
            "Cannot find version tags (e.g. v1.0.0). Create at least one tag manually"
        )


class MissingTrunkBranch(PreconditionFailed):
    def __init__(self, name: str):
        super().__init__(f"trunk branch {name!r} does not exist")
        self.name = name


class GatewayError(Exception):
    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail if status_code is None else f"{status_code}: {detail}")
        self.detail = detail
        self.status_code = status_code


class TagAlreadyExists(GatewayError):
    pass


class RefAlreadyExists(GatewayError):
    pass


class RefNotFound(GatewayError):
    pass
