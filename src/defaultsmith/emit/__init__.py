from defaultsmith.emit.writer import ModuleRenderer, output_path, render_module, write_module

__all__ = [
    "ModuleRenderer",
    "output_path",
    "render_module",
    "write_module",
]
