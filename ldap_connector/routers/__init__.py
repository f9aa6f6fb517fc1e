from .login import LoginFunc, add_login_route

__all__ = ["LoginFunc", "add_login_route"]
