from .descriptor import ParsedDescriptor, TaskAttributes, parse

__all__ = ["ParsedDescriptor", "TaskAttributes", "parse"]
