import contextlib
from collections.abc import AsyncIterator

from loguru import logger
from mcp.server.fastmcp import FastMCP

from component_gallery_mcp.bootstrap import AppRuntime

SERVER_NAME = "component-gallery"


def create_server(runtime: AppRuntime) -> FastMCP:
    @contextlib.asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[AppRuntime]:
        await runtime.startup()
        try:
            yield runtime
        finally:
            await runtime.close()
            logger.info("Component gallery MCP server stopped")

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)
    tool = runtime.tool

    @mcp.tool(name=tool.name, description=tool.description)
    async def generate_component(
        description: str,
        framework: str = "react",
        styling: str = "tailwind",
    ) -> str:
        return await tool.execute({
            "description": description,
            "framework": framework,
            "styling": styling,
        })

    return mcp
