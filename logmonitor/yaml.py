from typing import Any, Optional

from .schema import LogmonitorConfig, FieldConfig

__all__ = (
    'ExecutablePath',
    'config_yaml_view',
    'yaml_dump',
    'HAS_YAML',
)

EXE_TAG = '!exe'

class ExecutablePath(str):
    """
    Path of an executable, dumped with an `!exe` tag to tell it apart from
    literal values.
    """
    __slots__ = ()

def _field_view(field: FieldConfig) -> str:
    return ExecutablePath(field['value']) if field['exe'] else field['value']

def config_yaml_view(config: LogmonitorConfig) -> dict[str, Any]:
    """
    The configuration the way it would be written by hand: sources as
    `KIND:PATH` lines and executables tagged with `!exe`.
    """
    return {
        'notifications': [
            {
                'name':    notif['name'],
                'filter':  ExecutablePath(notif['filter']),
                'title':   _field_view(notif['title']),
                'desc':    _field_view(notif['desc']),
                'level':   _field_view(notif['level']),
                'sources': [f"{source['kind']}:{source['path']}" for source in notif['sources']],
            }
            for notif in config['notifications']
        ],
        'targets': [
            {
                'name':       target['name'],
                'send':       ExecutablePath(target['send']),
                'debouncing': target.get('debouncing', 0),
            }
            for target in config['targets']
        ],
    }

try:
    import ruamel.yaml.representer

    from ruamel.yaml import YAML
    from io import StringIO

    class YamlRepresenter(ruamel.yaml.representer.RoundTripRepresenter):
        __slots__ = ()

        def represent_executable(self, data: ExecutablePath) -> Any:
            return self.represent_scalar(EXE_TAG, str(data))

    YamlRepresenter.add_representer(ExecutablePath, YamlRepresenter.represent_executable)

    def yaml_dump(data: Any, /, indent: Optional[int] = None) -> str:
        yaml = YAML(typ='safe', pure=True)
        yaml.Representer = YamlRepresenter
        yaml.default_flow_style = False
        yaml.allow_unicode = True

        if indent is not None:
            yaml.indent = indent

        stream = StringIO()
        yaml.dump(data, stream)

        return stream.getvalue()

    HAS_YAML = True
except ImportError:
    try:
        import yaml as pyyaml # type: ignore

        pyyaml.SafeDumper.add_representer(
            ExecutablePath,
            lambda dumper, data: dumper.represent_scalar(EXE_TAG, str(data)),
        )

        def yaml_dump(data: Any, /, indent: Optional[int] = None) -> str:
            return pyyaml.safe_dump(data, indent=indent, default_flow_style=False, allow_unicode=True, sort_keys=False)

        HAS_YAML = True
    except ImportError:
        HAS_YAML = False

        def yaml_dump(data: Any, /, indent: Optional[int] = None) -> str:
            raise NotImplementedError('Writing YAML requires the `ruamel.yaml` or `PyYAML` package.')
