# contactsheet/errors.py
"""Error taxonomy shared by the selector, compositor, filter pipeline and
the storage/codec boundaries."""


class ImagePipelineError(Exception):
    """Base class for every error raised by this package."""


class BatchTooLargeError(ImagePipelineError):
    def __init__(self, count: int, limit: int = 75):
        self.count = count
        self.limit = limit
        super().__init__(f"too many images to process, limit {limit}, got: {count}")


class ItemFetchError(ImagePipelineError):
    def __init__(self, key: str, reason: str = ""):
        self.key = key
        super().__init__(f"cannot fetch {key}: {reason}" if reason else f"cannot fetch {key}")


class ItemDecodeError(ImagePipelineError):
    pass


class EncodeError(ImagePipelineError):
    pass


class UnsupportedOperationError(ImagePipelineError):
    def __init__(self, operation):
        self.operation = operation
        super().__init__(f"non expected operation: {operation}")


class NameFormatError(ImagePipelineError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"cannot extract image extension from {name!r}, expected <name>.<jpg|jpeg|png>"
        )


class UploadError(ImagePipelineError):
    def __init__(self, key: str, reason: str = ""):
        self.key = key
        super().__init__(f"failed to upload {key}: {reason}" if reason else f"failed to upload {key}")


class ListingError(ImagePipelineError):
    def __init__(self, bucket: str, reason: str = ""):
        self.bucket = bucket
        super().__init__(
            f"unable to list items in bucket {bucket!r}: {reason}" if reason
            else f"unable to list items in bucket {bucket!r}"
        )


class ConfigurationError(ImagePipelineError):
    pass
