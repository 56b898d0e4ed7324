"""Polish Editing Engine - in-page visual editing with generative patches."""

__version__ = "0.1.0"
