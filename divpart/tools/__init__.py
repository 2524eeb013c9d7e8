from divpart.tools import mock

__all__ = ["mock"]
