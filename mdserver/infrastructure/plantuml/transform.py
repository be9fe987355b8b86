"""
Преобразование тела документа: PlantUML -> ссылки на картинки.

=== ЧТО ЗАМЕНЯЕТСЯ ===
1. Блоки ```plantuml ... ``` -> ![PlantUML Diagram](<public>/png/<encoded>)
   (@startuml/@enduml и skinparam добавляются, если их нет)
2. Ссылки ![title](path/file.puml) -> содержимое файла, закодированное так же.
   Поиск файла (только внутри content_root):
     content_root/<base_dir>/<path>
     content_root/<base_dir>/diagrams/<имя файла>
     content_root/<path>
   Файл не найден -> ссылка на соседний .png
"""
import os
import re
from typing import List, Optional

from mdserver.domain.sync import TransformError
from mdserver.logging_config import get_logger

from .encoder import encode_plantuml

logger = get_logger("mdserver.infrastructure.plantuml")

CODE_BLOCK_RE = re.compile(r"```plantuml\s*\n(.*?)\n```", re.DOTALL)
PUML_REF_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+\.puml)\)")

SKINPARAMS = (
    "skinparam defaultFontSize 11\n"
    "skinparam defaultFontName Arial\n"
    "skinparam ArrowFontSize 10\n"
    "skinparam ClassFontSize 11\n"
    "skinparam NoteFontSize 10\n"
)
SKINPARAM_MARKER = "skinparam defaultFontSize"


def wrap_diagram(code: str) -> str:
    """Добавить @startuml (с skinparam) и @enduml, если их нет"""
    code = code.strip()
    if "@startuml" not in code:
        code = "@startuml\n" + SKINPARAMS + code
    if "@enduml" not in code:
        code += "\n@enduml"
    return code


def inject_skinparams(code: str) -> str:
    """Вставить skinparam сразу после строки @startuml"""
    if SKINPARAM_MARKER in code or "@startuml" not in code:
        return code
    first, _, rest = code.partition("\n")
    return first + "\n" + SKINPARAMS + rest


def unwrap_fence(content: str) -> str:
    """Файл .puml, оформленный как ```plantuml блок -> содержимое без ограждения"""
    if not content.startswith("```plantuml"):
        return content
    lines = content.rstrip().split("\n")
    if len(lines) > 2:
        return "\n".join(lines[1:-1])
    return content


class PlantUMLTransformer:
    """Callable (body, base_dir) -> body для Reconciler и рендеринга страниц"""

    def __init__(self, content_root: str, public_url: str = "/plantuml"):
        self.content_root = os.path.abspath(content_root)
        self.public_url = public_url.rstrip("/")

    def __call__(self, body: str, base_dir: str = "") -> str:
        try:
            body = CODE_BLOCK_RE.sub(self._replace_block, body)
            return PUML_REF_RE.sub(lambda m: self._replace_reference(m, base_dir), body)
        except Exception as e:
            raise TransformError(f"PlantUML processing failed: {e}") from e

    def image_url(self, code: str) -> str:
        return f"{self.public_url}/png/{encode_plantuml(code)}"

    def _replace_block(self, match: re.Match) -> str:
        return f"![PlantUML Diagram]({self.image_url(wrap_diagram(match.group(1)))})"

    def _replace_reference(self, match: re.Match, base_dir: str) -> str:
        title, puml_path = match.group(1), match.group(2)

        code = self.read_puml(puml_path, base_dir)
        if code is None:
            png_path = puml_path.replace(".puml", ".png", 1)
            logger.debug(f".puml not found: {puml_path}, falling back to {png_path}")
            return f"![{title}]({png_path})"

        return f"![{title}]({self.image_url(inject_skinparams(code))})"

    def candidates(self, puml_path: str, base_dir: str) -> List[str]:
        paths = []
        if base_dir:
            paths.append(os.path.join(self.content_root, base_dir, puml_path))
            paths.append(os.path.join(self.content_root, base_dir, "diagrams", os.path.basename(puml_path)))
        paths.append(os.path.join(self.content_root, puml_path))

        inside = []
        for path in paths:
            full_path = os.path.abspath(path)
            if os.path.commonpath([self.content_root, full_path]) == self.content_root:
                inside.append(full_path)
        return inside

    def read_puml(self, puml_path: str, base_dir: str = "") -> Optional[str]:
        """Содержимое .puml или None, если файл не найден внутри content_root"""
        for full_path in self.candidates(puml_path.lstrip("/"), base_dir):
            try:
                with open(full_path, "r", encoding="utf-8", errors="replace") as f:
                    return unwrap_fence(f.read())
            except OSError:
                continue
        return None
