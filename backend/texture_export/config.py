import os

# Atlas size every frame is rendered at, independent of the document stage size
RENDER_WIDTH = int(os.environ.get("TEXTURE_EXPORT_RENDER_WIDTH", "2048"))
RENDER_HEIGHT = int(os.environ.get("TEXTURE_EXPORT_RENDER_HEIGHT", "2048"))

# Naming convention identifying exported texture classes
TEXTURE_NAMESPACE = os.environ.get("TEXTURE_EXPORT_NAMESPACE", "com.exported.textures")
TEXTURE_BASE_NAMESPACE = os.environ.get("TEXTURE_EXPORT_BASE_NAMESPACE", "com.lachhh.flash")
TEXTURE_BASE_CLASS = os.environ.get("TEXTURE_EXPORT_BASE_CLASS", "FlashAnimationTexture")

# Render backend factory as "package.module:callable"
RENDERER = os.environ.get("TEXTURE_EXPORT_RENDERER")

LOG_LEVEL = os.environ.get("TEXTURE_EXPORT_LOG_LEVEL", "INFO")
