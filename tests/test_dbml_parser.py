import unittest

from dbml_canvas.core.dbml_parser import DEFAULT_DBML, parse_dbml, table_blocks
from dbml_canvas.core.schema_model import (
    MANY_TO_MANY, MANY_TO_ONE, ONE_TO_MANY, ONE_TO_ONE, ParsedSchema,
)


class TestDBMLParser(unittest.TestCase):
    def test_starter_document_parses_tables_and_refs(self):
        schema = parse_dbml(DEFAULT_DBML)

        self.assertEqual([t.name for t in schema.tables], ["follows", "users", "posts"])
        self.assertEqual(len(schema.relationships), 3)

        posts = schema.get_table("posts")
        self.assertEqual([c.name for c in posts.columns],
                         ["id", "title", "body", "user_id", "status", "created_at"])
        self.assertTrue(posts.get_column("id").is_primary_key)
        self.assertTrue(posts.get_column("user_id").is_not_null)
        self.assertTrue(posts.get_column("user_id").is_foreign_key)
        self.assertEqual(posts.get_column("body").note, "Content of the post")
        self.assertEqual(schema.relationships[0].cardinality, MANY_TO_ONE)
        self.assertEqual(schema.relationships[1].cardinality, ONE_TO_MANY)

    def test_parsing_is_deterministic(self):
        self.assertEqual(parse_dbml(DEFAULT_DBML), parse_dbml(DEFAULT_DBML))

    def test_foreign_key_flag_set_on_from_column(self):
        schema = parse_dbml(
            "Table users {\n  id integer [primary key]\n}\n\n"
            "Table orders {\n  id integer [pk]\n  user_id integer\n}\n\n"
            "Ref: orders.user_id > users.id\n"
        )
        orders = schema.get_table("orders")
        self.assertTrue(orders.get_column("user_id").is_foreign_key)
        self.assertFalse(orders.get_column("id").is_foreign_key)
        self.assertFalse(schema.get_table("users").get_column("id").is_foreign_key)

        rel = schema.relationships[0]
        self.assertEqual(rel.endpoints, ("orders", "user_id", "users", "id"))

    def test_ref_operators(self):
        code = "\n".join([
            "Ref: a.x > b.y",
            "Ref: a.x < b.y",
            "Ref: a.x - b.y",
            "Ref: a.x <> b.y",
        ])
        cardinalities = [r.cardinality for r in parse_dbml(code).relationships]
        self.assertEqual(cardinalities, [MANY_TO_ONE, ONE_TO_MANY, ONE_TO_ONE, MANY_TO_MANY])

    def test_column_constraints(self):
        schema = parse_dbml(
            "Table t {\n"
            "  id INT [PK]\n"
            "  code varchar(100) [unique, not null]\n"
            "  label text [note: 'pk here, not null']\n"
            "  plain text [null, increment]\n"
            "}\n"
        )
        t = schema.get_table("t")
        self.assertTrue(t.get_column("id").is_primary_key)
        self.assertEqual(t.get_column("id").type, "int")
        self.assertEqual(t.get_column("code").type, "varchar(100)")
        self.assertTrue(t.get_column("code").is_not_null)
        self.assertFalse(t.get_column("code").is_primary_key)

        label = t.get_column("label")
        self.assertEqual(label.note, "pk here, not null")
        self.assertFalse(label.is_primary_key)
        self.assertFalse(label.is_not_null)

        plain = t.get_column("plain")
        self.assertFalse(plain.is_not_null)
        self.assertIsNone(plain.note)

    def test_unclosed_table_ends_at_next_header(self):
        schema = parse_dbml(
            "Table a {\n  id int\n  name varchar\n\n"
            "Table b {\n  id int\n}\n"
        )
        self.assertEqual([t.name for t in schema.tables], ["a", "b"])
        self.assertEqual([c.name for c in schema.get_table("a").columns], ["id", "name"])
        self.assertEqual([c.name for c in schema.get_table("b").columns], ["id"])

    def test_unclosed_table_at_end_of_text(self):
        schema = parse_dbml("Table draft {\n  id int\n  tit")
        self.assertEqual(len(schema.tables), 1)
        self.assertEqual([c.name for c in schema.tables[0].columns], ["id"])

    def test_single_line_table(self):
        schema = parse_dbml("Table a { id int [pk] }")
        self.assertEqual(len(schema.tables), 1)
        self.assertTrue(schema.tables[0].get_column("id").is_primary_key)

    def test_two_tables_on_one_line(self):
        schema = parse_dbml("Table a {id int} Table b {id int}")
        self.assertEqual([t.name for t in schema.tables], ["a", "b"])
        self.assertEqual([c.name for c in schema.get_table("b").columns], ["id"])

    def test_table_blocks_span_header_to_brace(self):
        code = "Table a {\n  id int\n}\n\nTable b {\n  id int\n"
        blocks = table_blocks(code)
        self.assertEqual([(name, code[start:end]) for name, start, end, _ in blocks], [
            ("a", "Table a {\n  id int\n}"),
            ("b", "Table b {\n  id int\n"),
        ])

    def test_duplicate_tables_are_kept(self):
        schema = parse_dbml("Table a {\n  id int\n}\nTable a {\n  other int\n}\n")
        self.assertEqual(len(schema.tables), 2)
        self.assertEqual(schema.get_table("a").columns[0].name, "id")

    def test_comment_lines_are_ignored(self):
        schema = parse_dbml(
            "// Table ghost {\n"
            "Table a {\n  // note: not a column\n  id int\n}\n"
            "// Ref: a.id > b.id\n"
        )
        self.assertEqual([t.name for t in schema.tables], ["a"])
        self.assertEqual([c.name for c in schema.tables[0].columns], ["id"])
        self.assertEqual(schema.relationships, [])

    def test_ref_to_unknown_table_is_kept(self):
        schema = parse_dbml("Table a {\n  b_id int\n}\nRef: a.b_id > missing.id\n")
        self.assertEqual(len(schema.relationships), 1)
        self.assertTrue(schema.tables[0].get_column("b_id").is_foreign_key)

    def test_empty_and_garbage_input(self):
        self.assertEqual(parse_dbml(""), ParsedSchema())
        self.assertEqual(parse_dbml("this is { not dbml"), ParsedSchema())

    def test_to_dict_uses_interchange_keys(self):
        data = parse_dbml("Table a {\n  id int [pk]\n}\nRef: a.id - a.id\n").to_dict()
        self.assertEqual(data["tables"][0]["columns"][0], {
            "name": "id",
            "type": "int",
            "isPrimaryKey": True,
            "isForeignKey": True,
            "isNotNull": False,
        })
        self.assertEqual(data["relationships"][0], {
            "from": {"table": "a", "column": "id"},
            "to": {"table": "a", "column": "id"},
            "type": ONE_TO_ONE,
        })
        self.assertEqual(ParsedSchema.from_dict(data).to_dict(), data)


if __name__ == "__main__":
    unittest.main()
