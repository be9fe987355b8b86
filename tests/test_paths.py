"""
Тесты маппинга путей в документы
"""
from mdserver.application.sync import PathMapper, parse_content, slugify


class TestSlugify:
    """Тесты slug"""

    def test_lowercase_and_spaces(self):
        assert slugify("My Note") == "my-note"

    def test_path_separators(self):
        assert slugify("sub/My Note") == "sub-my-note"
        assert slugify("sub\\Deep\\x") == "sub-deep-x"

    def test_repeated_separators_collapsed(self):
        assert slugify("a  -  b") == "a-b"


class TestPathMapper:
    """Тесты locate / build_post"""

    def setup_method(self):
        self.mapper = PathMapper(collection_prefix="content/", root_collection="root")

    def test_index_file(self):
        location = self.mapper.locate("A/index.md")
        assert location.collection == "content/A"
        assert location.url == "content-A-index"
        assert location.is_index is True
        assert location.base_dir == "A"

    def test_readme_is_index_case_insensitive(self):
        location = self.mapper.locate("A/README.md")
        assert location.is_index is True
        assert location.url == "content-A-index"

    def test_regular_file(self):
        location = self.mapper.locate("A/notes.md")
        assert location.collection == "content/A"
        assert location.url == "notes"
        assert location.is_index is False

    def test_nested_file_uses_path_below_collection(self):
        location = self.mapper.locate("A/sub/My Note.md")
        assert location.collection == "content/A"
        assert location.url == "sub-my-note"

    def test_root_file_goes_to_root_collection(self):
        location = self.mapper.locate("top.md")
        assert location.collection == "content/root"
        assert location.url == "top"
        assert location.base_dir == ""

    def test_without_prefix(self):
        mapper = PathMapper(collection_prefix="")
        assert mapper.locate("A/index.md").url == "A-index"
        assert mapper.locate("A/index.md").collection == "A"

    def test_locate_is_pure(self):
        """Одинаковый путь всегда даёт одинаковый результат"""
        assert self.mapper.locate("A/x.md") == self.mapper.locate("A/x.md")

    def test_directory_of(self):
        assert self.mapper.directory_of("content/A") == "A"
        assert self.mapper.directory_of("content/root") is None
        assert self.mapper.directory_of("uploaded/A") is None
        assert self.mapper.directory_of("content/A/B") is None

    def test_build_post(self):
        post = self.mapper.build_post("A/index.md", "# Welcome\n\ntext")
        assert post.title == "Welcome"
        assert post.collection == "content/A"
        assert post.is_index is True
        assert post.body == "# Welcome\n\ntext"


class TestParseContent:
    """Тесты заголовка и front-matter"""

    def test_frontmatter_title_wins(self):
        title, body = parse_content('---\ntitle: "From FM"\n---\n# Heading\nbody', "x.md")
        assert title == "From FM"
        assert body == "# Heading\nbody"

    def test_first_heading(self):
        title, _ = parse_content("intro\n# Heading\n## Sub", "x.md")
        assert title == "Heading"

    def test_filename_fallback(self):
        title, body = parse_content("just text", "My File.md")
        assert title == "My File"
        assert body == "just text"

    def test_frontmatter_without_title(self):
        title, body = parse_content("---\nauthor: me\n---\nplain", "doc.md")
        assert title == "doc"
        assert body == "plain"
