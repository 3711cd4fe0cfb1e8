import json
import sys
from pathlib import Path
from typing import Type

from pydantic import AliasChoices
from pydantic_core import PydanticUndefined
from pydantic_settings import BaseSettings

root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path / "src"))

from tenantdb.infrastructure.settings import TenantDBSettings  # noqa: E402


def _env_vars(prefix: str, name: str, field) -> list[str]:
    # Fields with validation aliases are read from the alias names only
    alias = field.validation_alias
    if isinstance(alias, AliasChoices):
        return [choice for choice in alias.choices if isinstance(choice, str)]
    if isinstance(alias, str):
        return [alias]
    return [f"{prefix}{name.upper()}"]


def get_model_metadata(settings_class: Type[BaseSettings]):
    prefix = settings_class.model_config.get("env_prefix", "")
    properties = []

    for name, field in settings_class.model_fields.items():
        annotation = field.annotation
        type_name = getattr(annotation, "__name__", str(annotation))
        default = field.get_default()

        is_required = default is PydanticUndefined

        if is_required or default is None:
            display_default = None
        elif isinstance(default, (bool, int)):
            # Keep booleans and numbers JSON-native
            display_default = default
        else:
            display_default = str(default)

        env_vars = _env_vars(prefix, name, field)
        properties.append(
            {
                "env_var": env_vars[0],
                "fallback_env_vars": env_vars[1:],
                "type": type_name,
                "default": display_default,
                "required": is_required,
                "description": field.description or "",
            }
        )

    return {
        "class_name": settings_class.__name__,
        "prefix": prefix,
        "doc": settings_class.__doc__ or "",
        "properties": properties,
    }


def export_settings(output_path: Path | None = None) -> Path:
    classes = [TenantDBSettings]

    data = {cls.__name__: get_model_metadata(cls) for cls in classes}

    output_path = output_path or root_path / "docs" / "env-vars.json"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"✅ Exported settings to {output_path}")
    return output_path


if __name__ == "__main__":
    export_settings(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
