from .client import McpClient, McpError, result_text

__all__ = ['McpClient', 'McpError', 'result_text']
