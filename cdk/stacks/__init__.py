"""CDK stacks for the magic item browser."""
from .api_stack import MagicItemsApiStack
from .base_stack import MagicItemsBaseStack

__all__ = ["MagicItemsBaseStack", "MagicItemsApiStack"]
