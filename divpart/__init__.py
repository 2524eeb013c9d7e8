from divpart import algos, config, metrics, structures, tools

__all__ = ["algos", "metrics", "tools", "config", "structures"]
