import sys
import unittest
from io import BytesIO
from pathlib import Path

from pypdf import PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import ExtractionFailure  # noqa: E402
from app.parsing.parse import collapse_blank_lines, ensure_usable_text, extract_pdf_text, parse_upload  # noqa: E402


class ParsingFacadeTests(unittest.TestCase):
    def test_parse_txt_returns_stable_parsed_doc(self):
        content = b"Line one\n\n\n- Bullet item\r\nLine three\n"
        parsed = parse_upload(content, "resume.txt")
        self.assertEqual(parsed.source_type, "txt")
        self.assertEqual(parsed.text, "Line one\n- Bullet item\nLine three")
        self.assertEqual(len(parsed.doc_id), 16)
        self.assertEqual(parsed.doc_id, parse_upload(content, "other.txt").doc_id)

    def test_unsupported_extension_is_an_extraction_failure(self):
        with self.assertRaises(ExtractionFailure) as ctx:
            parse_upload(b"PK\x03\x04", "resume.docx")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_corrupt_pdf_is_an_extraction_failure(self):
        with self.assertRaises(ExtractionFailure):
            parse_upload(b"this is not a pdf", "resume.pdf")

    def test_pdf_without_text_layer(self):
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        buffer = BytesIO()
        writer.write(buffer)
        data = buffer.getvalue()

        self.assertEqual(extract_pdf_text(data), "")
        parsed = parse_upload(data, "scan.pdf")
        self.assertEqual(parsed.source_type, "pdf")
        self.assertEqual(parsed.parsing_warnings, ["No extractable text found in PDF."])
        with self.assertRaises(ExtractionFailure):
            ensure_usable_text(parsed.text)

    def test_short_text_is_rejected(self):
        with self.assertRaises(ExtractionFailure):
            ensure_usable_text("   too short   ", min_chars=50)
        self.assertEqual(ensure_usable_text("  " + "x" * 60 + "  ", min_chars=50), "x" * 60)

    def test_blank_line_runs_collapse(self):
        self.assertEqual(collapse_blank_lines("a\n \n\nb\r\n\r\nc"), "a\nb\nc")


if __name__ == "__main__":
    unittest.main()
