"""Tests for the text projector."""

from dirvec.vectors.projector import TextProjector


class TestTextProjector:
    """Tests for TextProjector class."""

    def test_joins_name_and_email(self):
        """Test default fields are joined in order."""
        projector = TextProjector()
        record = {"name": "Ana Silva", "email": "ana@x.com", "status": "Ativo"}
        assert projector.project(record) == "Ana Silva. ana@x.com"

    def test_skips_missing_and_empty_values(self):
        """Test None, empty and whitespace values are left out."""
        projector = TextProjector()
        assert projector.project({"name": None, "email": "ana@x.com"}) == "ana@x.com"
        assert projector.project({"name": "   ", "email": "ana@x.com"}) == "ana@x.com"
        assert projector.project({"email": "ana@x.com"}) == "ana@x.com"

    def test_empty_record_projects_to_empty_string(self):
        """Test a record with no projected fields yields empty text."""
        projector = TextProjector()
        assert projector.project({"status": "Ativo"}) == ""
        assert projector.project({}) == ""

    def test_projection_is_pure(self):
        """Test repeated projection of an unchanged record is identical."""
        projector = TextProjector()
        record = {"name": "Ana Silva", "email": "ana@x.com"}
        assert projector.project(record) == projector.project(record)
        assert record == {"name": "Ana Silva", "email": "ana@x.com"}

    def test_only_projected_fields_matter(self):
        """Test non-projected fields do not change the text."""
        projector = TextProjector()
        a = {"name": "Ana Silva", "email": "ana@x.com", "status": "Ativo"}
        b = {"name": "Ana Silva", "email": "ana@x.com", "status": "Bloqueado"}
        c = {"name": "Ana Souza", "email": "ana@x.com", "status": "Ativo"}
        assert projector.project(a) == projector.project(b)
        assert projector.project(a) != projector.project(c)

    def test_custom_fields_and_separator(self):
        """Test configurable field order and separator."""
        projector = TextProjector(fields=("email", "status", "isAdmin"), separator=" | ")
        record = {"email": "ana@x.com", "status": "Ativo", "isAdmin": True}
        assert projector(record) == "ana@x.com | Ativo | True"
