import sys

from dotenv import load_dotenv
from loguru import logger

from component_gallery_mcp.app_config import load_json_config, parse_app_config, resolve_runtime_env, validate_config
from component_gallery_mcp.bootstrap import build_runtime
from component_gallery_mcp.errors import ConfigurationError
from component_gallery_mcp.logging_config import setup_logging
from component_gallery_mcp.server import create_server


def run() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env()

    try:
        log_descriptions = setup_logging(
            level=app.log_level,
            consumers=app.log_consumers,
            secrets=[env.api_key, env.supabase_anon_key or ""],
        )
        validate_config(app, env)
    except ConfigurationError as ex:
        logger.remove()
        logger.add(sys.stderr, level="ERROR")
        logger.error(str(ex))
        sys.exit(1)

    runtime = build_runtime(app, env)
    server = create_server(runtime)

    logger.info(
        f"Component gallery MCP server running (strategy: {runtime.strategy}, "
        f"logging: {', '.join(log_descriptions) or 'none'})"
    )
    server.run()


if __name__ == "__main__":
    run()
