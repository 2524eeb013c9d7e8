from divpart.metrics import diversity, tables

__all__ = ["diversity", "tables"]
