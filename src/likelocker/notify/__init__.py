from .ntfy import NtfyNotifier

__all__ = ["NtfyNotifier"]
