from divpart.algos import checks, common, diversity

__all__ = ["checks", "common", "diversity"]
