from repolens.api.v1 import repo, user

__all__ = [
    "repo",
    "user",
]
