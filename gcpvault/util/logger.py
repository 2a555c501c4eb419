import sys

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
_min_level = LEVELS["INFO"]

def set_level(level: str):
    global _min_level
    _min_level = LEVELS[level.upper()]

def log(message: str, level: str = "INFO", **fields):
    if LEVELS.get(level, LEVELS["INFO"]) < _min_level:
        return
    output = f"[gcp-vault-api] [{level}] {message}"
    if fields:
        output += " " + " ".join(f"{key}={value}" for key, value in fields.items())
    eprint(output)

def eprint(*args, **kwargs):
    print(*args, file=sys.stderr, **kwargs)
