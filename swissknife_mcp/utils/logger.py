"""
Colored logging utility for the swissknife MCP server.

Everything is written to stderr: on the stdio transport, stdout carries
protocol frames only.
"""

import logging
import sys
from typing import Any, Dict, Optional


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels and message types."""

    # ANSI color codes
    COLORS = {
        'RESET': '\033[0m',
        'BOLD': '\033[1m',
        'RED': '\033[31m',
        'GREEN': '\033[32m',
        'YELLOW': '\033[33m',
        'MAGENTA': '\033[35m',
        'WHITE': '\033[37m',
        'BRIGHT_BLACK': '\033[90m',
        'BRIGHT_RED': '\033[91m',
        'BRIGHT_GREEN': '\033[92m',
        'BRIGHT_YELLOW': '\033[93m',
        'BRIGHT_BLUE': '\033[94m',
    }

    # Message type colors
    MESSAGE_COLORS = {
        'TOOL_CALL': COLORS['BRIGHT_YELLOW'],  # Tool calls (yellow)
        'TOOL_RESULT': COLORS['BRIGHT_GREEN'],  # Successful results (green)
        'TOOL_FAILURE': COLORS['YELLOW'],       # Normalized failures (dark yellow)
        'BACKEND': COLORS['BRIGHT_BLUE'],       # Backend activation (blue)
        'MCP_SERVER': COLORS['MAGENTA'],        # MCP server messages (magenta)
        'ERROR': COLORS['BRIGHT_RED'],          # Errors (red)
        'INFO': COLORS['WHITE'],                # General info (white)
        'DEBUG': COLORS['BRIGHT_BLACK'],        # Debug (gray)
    }

    def __init__(self, fmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        formatted = super().format(record)
        if not self.use_color:
            return formatted

        msg_type = getattr(record, 'msg_type', 'INFO')
        color = self.MESSAGE_COLORS.get(msg_type, self.COLORS['WHITE'])
        return f"{color}{formatted}{self.COLORS['RESET']}"


def _preview(value: Any, limit: int = 100) -> str:
    text = str(value)
    return text if len(text) < limit else f"{text[:limit - 3]}..."


class MCPLogger:
    """Centralized logger for the MCP server with colored output."""

    def __init__(self, name: str = "swissknife-mcp", level: int = logging.INFO, stream=None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Remove existing handlers to avoid duplicates
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        stream = stream or sys.stderr
        handler = logging.StreamHandler(stream)
        use_color = hasattr(stream, "isatty") and stream.isatty()
        handler.setFormatter(ColoredFormatter('%(message)s', use_color=use_color))
        self.logger.addHandler(handler)

        # Prevent propagation to root logger
        self.logger.propagate = False

    def _log_with_type(self, level: int, msg_type: str, message: str):
        """Log a message with a specific type for coloring."""
        self.logger.log(level, message, extra={'msg_type': msg_type})

    def tool_call(self, tool_name: str, arguments: Dict[str, Any]):
        """Log tool call (yellow)."""
        self._log_with_type(logging.INFO, 'TOOL_CALL', f"TOOL CALL: {tool_name}({_preview(arguments)})")

    def tool_result(self, tool_name: str, success: bool, detail: Optional[str] = None,
                    execution_time: Optional[float] = None):
        """Log the outcome of a tool call."""
        status = "SUCCESS" if success else "FAILED"
        msg = f"TOOL RESULT: {tool_name} -> {status}"
        if execution_time is not None:
            msg += f" ({execution_time:.3f}s)"
        if detail:
            msg += f" | {_preview(detail)}"
        self._log_with_type(logging.INFO, 'TOOL_RESULT' if success else 'TOOL_FAILURE', msg)

    def backend(self, name: str, tool_names: list):
        """Log backend activation (blue)."""
        self._log_with_type(logging.INFO, 'BACKEND', f"BACKEND: {name} [{', '.join(tool_names)}]")

    def mcp_server(self, message: str):
        """Log MCP server activity (magenta)."""
        self._log_with_type(logging.INFO, 'MCP_SERVER', f"MCP: {message}")

    def error(self, message: str):
        """Log error (red)."""
        self._log_with_type(logging.ERROR, 'ERROR', f"ERROR: {message}")

    def available_tools(self, tools: list):
        """Log the tools being served."""
        tool_names = [tool.name if hasattr(tool, "name") else str(tool) for tool in tools]
        self._log_with_type(logging.INFO, "INFO", f"Available tools: {', '.join(tool_names)}")


# Global logger instance
mcp_logger = MCPLogger()


def set_log_level(level: int):
    """Set the logging level."""
    mcp_logger.logger.setLevel(level)


def configure_logging(verbose: bool = False) -> None:
    """Route component loggers (``swissknife-mcp-*``) to stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    set_log_level(level)
