import json
import unittest

from dbml_canvas.core.dbml_parser import DEFAULT_DBML, parse_dbml
from dbml_canvas.core.exporters import generate_dbml, generate_json, generate_sql, quote_identifier
from dbml_canvas.core.schema_model import Column, ParsedSchema, Relationship, Table, MANY_TO_MANY


class TestSQLGenerator(unittest.TestCase):
    def setUp(self):
        self.schema = parse_dbml(DEFAULT_DBML)

    def test_postgresql_output(self):
        sql = generate_sql(self.schema, "postgresql")

        self.assertIn("-- Table: users\nCREATE TABLE \"users\" (", sql)
        self.assertIn('  "id" INTEGER,', sql)
        self.assertIn('  "username" VARCHAR(255),', sql)
        self.assertIn('  "user_id" INTEGER NOT NULL,', sql)
        self.assertIn('  PRIMARY KEY ("id")\n);', sql)
        self.assertIn(
            'ALTER TABLE "posts"\n'
            '  ADD CONSTRAINT "fk_posts_user_id"\n'
            '  FOREIGN KEY ("user_id")\n'
            '  REFERENCES "users" ("id");',
            sql,
        )

    def test_note_comment_follows_separator(self):
        sql = generate_sql(self.schema, "postgresql")
        self.assertIn('  "body" TEXT, -- Content of the post', sql)

    def test_composite_primary_key_clause(self):
        schema = ParsedSchema(tables=[Table("order_items", [
            Column("order_id", "integer", is_primary_key=True),
            Column("product_id", "integer", is_primary_key=True),
            Column("qty", "integer"),
        ])])
        sql = generate_sql(schema, "sqlite")
        self.assertIn('  "qty" INTEGER,\n  PRIMARY KEY ("order_id", "product_id")\n);', sql)

    def test_dialect_quoting_and_types(self):
        mysql = generate_sql(self.schema, "mysql")
        self.assertIn("CREATE TABLE `users` (", mysql)
        self.assertIn("  `id` INT,", mysql)

        sqlserver = generate_sql(self.schema, "sqlserver")
        self.assertIn("CREATE TABLE [users] (", sqlserver)
        self.assertIn("  [body] NVARCHAR(MAX), -- Content of the post", sqlserver)
        self.assertIn("  [created_at] DATETIME2", sqlserver)

        sqlite = generate_sql(self.schema, "sqlite")
        self.assertIn('  "username" TEXT,', sqlite)

    def test_unmapped_type_is_upper_cased(self):
        schema = ParsedSchema(tables=[Table("events", [Column("payload", "jsonb", is_not_null=True)])])
        self.assertIn('  "payload" JSONB NOT NULL\n);', generate_sql(schema))

    def test_unknown_dialect_raises(self):
        with self.assertRaises(ValueError):
            generate_sql(self.schema, "oracle")

    def test_quote_identifier(self):
        self.assertEqual(quote_identifier("a", "mysql"), "`a`")
        self.assertEqual(quote_identifier("a", "sqlserver"), "[a]")
        self.assertEqual(quote_identifier("a", "postgresql"), '"a"')


class TestDBMLGenerator(unittest.TestCase):
    def test_constraints_and_refs(self):
        schema = ParsedSchema(
            tables=[Table("tags", [
                Column("id", "integer", is_primary_key=True, is_not_null=True),
                Column("label", "varchar", is_not_null=True, note="it's \"shown\""),
            ])],
            relationships=[Relationship("tags", "id", "posts", "id", MANY_TO_MANY)],
        )
        code = generate_dbml(schema)
        self.assertEqual(code, (
            "Table tags {\n"
            "  id integer [primary key]\n"
            "  label varchar [not null, note: 'its shown']\n"
            "}\n\n"
            "Ref: tags.id <> posts.id"
        ))

    def test_generated_dbml_parses_back(self):
        schema = parse_dbml(DEFAULT_DBML)
        self.assertEqual(parse_dbml(generate_dbml(schema, header="copy")), schema)


class TestJSONGenerator(unittest.TestCase):
    def test_document_shape(self):
        schema = parse_dbml(DEFAULT_DBML)
        positions = {"users": {"x": 10, "y": 20}}
        document = json.loads(generate_json(DEFAULT_DBML, schema, positions))

        self.assertEqual(document["version"], "1.0")
        self.assertEqual(document["dbmlCode"], DEFAULT_DBML)
        self.assertEqual(document["parsedDBML"], schema.to_dict())
        self.assertEqual(document["nodePositions"], positions)
        self.assertTrue(document["exportedAt"].endswith("Z"))

    def test_positions_default_to_null(self):
        document = json.loads(generate_json("", ParsedSchema()))
        self.assertIsNone(document["nodePositions"])
        self.assertEqual(document["parsedDBML"], {"tables": [], "relationships": []})


if __name__ == "__main__":
    unittest.main()
