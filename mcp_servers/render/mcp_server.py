"""MCP server entrypoint for render service."""
import os
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from .server import RenderService


host = os.getenv("MCP_HOST", "127.0.0.1")
port = int(os.getenv("MCP_PORT", "8000"))
path = os.getenv("MCP_PATH", "/mcp").rstrip("/")
sse_path = f"{path}/sse"
message_path = f"{path}/messages/"

mcp = FastMCP(
    "mcp-render",
    json_response=True,
    host=host,
    port=port,
    sse_path=sse_path,
    message_path=message_path,
)
service = RenderService()


@mcp.tool()
async def render_project(project_path: str) -> Dict[str, Any]:
    """Render every complete scene of a project file into one stored video."""
    return await service.render_project(project_path)


@mcp.tool()
def narration_wav(pcm_b64: str) -> Dict[str, Any]:
    """Wrap base64 s16le PCM narration in a WAV container and store it."""
    return service.narration_wav(pcm_b64)


@mcp.tool()
def scene_wav(project_path: str, index: int) -> Dict[str, Any]:
    """Store the narration of one project scene as a WAV artifact."""
    return service.scene_wav(project_path, index)


if __name__ == "__main__":
    transport = os.getenv("MCP_TRANSPORT", "stdio")
    mcp.run(transport=transport)
