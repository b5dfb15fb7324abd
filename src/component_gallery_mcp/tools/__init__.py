from component_gallery_mcp.tools.generate_component_tool import GenerateComponentTool

__all__ = ["GenerateComponentTool"]
