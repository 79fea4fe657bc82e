from .enums import ModelName, ActionId

__all__ = ["ModelName", "ActionId"]
