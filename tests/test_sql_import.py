import unittest

from dbml_canvas.core.dbml_parser import DEFAULT_DBML, parse_dbml
from dbml_canvas.core.exporters import SQL_DIALECTS, generate_sql
from dbml_canvas.core.importers import import_sql
from dbml_canvas.core.schema_model import MANY_TO_ONE
from dbml_canvas.core.sql_parser import NO_TABLES_FOUND, map_sql_type, parse_sql, strip_sql_comments


class TestSQLImport(unittest.TestCase):
    def test_generated_sql_round_trips_for_every_dialect(self):
        original = parse_dbml(DEFAULT_DBML)
        for dialect in SQL_DIALECTS:
            with self.subTest(dialect=dialect):
                result = import_sql(generate_sql(original, dialect))
                self.assertTrue(result.success, result.error)

                reparsed = parse_dbml(result.dbml_code)
                self.assertEqual([t.name for t in reparsed.tables], [t.name for t in original.tables])
                self.assertEqual(len(reparsed.relationships), len(original.relationships))
                for table in original.tables:
                    self.assertEqual(
                        [c.name for c in reparsed.get_table(table.name).columns],
                        [c.name for c in table.columns],
                    )
                self.assertEqual(reparsed.get_table("users").primary_keys, ["id"])
                self.assertTrue(reparsed.get_table("posts").get_column("user_id").is_not_null)

    def test_import_writes_header_and_canonical_dbml(self):
        result = import_sql(
            "CREATE TABLE users (\n"
            "  id INT PRIMARY KEY,\n"
            "  email VARCHAR(255) NOT NULL\n"
            ");\n"
        )
        self.assertTrue(result.success)
        self.assertTrue(result.dbml_code.startswith("// Imported from SQL\n"))
        self.assertIn("Table users {", result.dbml_code)
        self.assertIn("  id integer [primary key]", result.dbml_code)
        self.assertIn("  email varchar [not null]", result.dbml_code)

    def test_missing_terminator_fails_with_reason(self):
        result = import_sql("CREATE TABLE users (\n  id INT\n)")
        self.assertFalse(result.success)
        self.assertEqual(result.error, NO_TABLES_FOUND)

    def test_no_create_statement_fails(self):
        schema, error = parse_sql("SELECT * FROM users;")
        self.assertEqual(error, NO_TABLES_FOUND)
        self.assertEqual(schema.tables, [])

    def test_table_options_after_body(self):
        schema, error = parse_sql(
            "CREATE TABLE IF NOT EXISTS `orders` (\n"
            "  `id` INT NOT NULL,\n"
            "  `total` FLOAT\n"
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;\n"
        )
        self.assertEqual(error, "")
        self.assertEqual(schema.tables[0].name, "orders")
        self.assertEqual([c.type for c in schema.tables[0].columns], ["integer", "float"])

    def test_alter_table_foreign_key(self):
        schema, _ = parse_sql(
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE posts ADD FOREIGN KEY (user_id) REFERENCES users(id);\n"
        )
        self.assertEqual(len(schema.relationships), 1)
        rel = schema.relationships[0]
        self.assertEqual(rel.endpoints, ("posts", "user_id", "users", "id"))
        self.assertEqual(rel.cardinality, MANY_TO_ONE)
        self.assertTrue(schema.get_table("posts").get_column("user_id").is_foreign_key)

    def test_foreign_keys_inside_create_body(self):
        schema, _ = parse_sql(
            "CREATE TABLE orders (\n"
            "  id INT,\n"
            "  user_id INT REFERENCES users(id),\n"
            "  product_id INT,\n"
            "  PRIMARY KEY (id),\n"
            "  CONSTRAINT fk_product FOREIGN KEY (product_id) REFERENCES products(id)\n"
            ");\n"
        )
        endpoints = {r.endpoints for r in schema.relationships}
        self.assertEqual(endpoints, {
            ("orders", "product_id", "products", "id"),
            ("orders", "user_id", "users", "id"),
        })
        orders = schema.get_table("orders")
        self.assertEqual([c.name for c in orders.columns], ["id", "user_id", "product_id"])
        self.assertEqual(orders.primary_keys, ["id"])

    def test_composite_table_primary_key(self):
        schema, _ = parse_sql(
            "CREATE TABLE order_items (\n"
            "  order_id INT NOT NULL,\n"
            "  product_id INT NOT NULL,\n"
            "  qty INT,\n"
            "  PRIMARY KEY (order_id, product_id)\n"
            ");\n"
        )
        self.assertEqual(schema.tables[0].primary_keys, ["order_id", "product_id"])
        self.assertEqual(len(schema.tables[0].columns), 3)

    def test_comma_inside_type_parameters_is_split(self):
        # Known limitation: the body is split on every comma
        schema, _ = parse_sql(
            "CREATE TABLE prices (\n"
            "  id INT,\n"
            "  amount DECIMAL(10,2) NOT NULL\n"
            ");\n"
        )
        amount = schema.tables[0].get_column("amount")
        self.assertEqual(amount.type, "decimal")
        self.assertFalse(amount.is_not_null)

    def test_comments_are_ignored(self):
        schema, _ = parse_sql(
            "-- CREATE TABLE fake (id INT);\n"
            "/* CREATE TABLE ghost (\n  id INT\n); */\n"
            "CREATE TABLE real_table (\n"
            "  id INT, -- identifier\n"
            "  name TEXT COMMENT 'display name'\n"
            ");\n"
        )
        self.assertEqual([t.name for t in schema.tables], ["real_table"])
        self.assertEqual(schema.tables[0].get_column("name").note, "display name")

    def test_quoted_identifiers(self):
        schema, _ = parse_sql(
            'CREATE TABLE "users" ("id" INTEGER, "name" TEXT);\n'
            "CREATE TABLE [logs] ([id] INT, [at] DATETIME2);\n"
        )
        self.assertEqual([t.name for t in schema.tables], ["users", "logs"])
        self.assertEqual(schema.get_table("logs").get_column("at").type, "timestamp")

    def test_type_mapping(self):
        self.assertEqual(map_sql_type("BIGINT"), "integer")
        self.assertEqual(map_sql_type("NVARCHAR"), "varchar")
        self.assertEqual(map_sql_type("UNIQUEIDENTIFIER"), "uuid")
        self.assertEqual(map_sql_type("BIT"), "boolean")
        self.assertEqual(map_sql_type("JSONB"), "jsonb")

    def test_strip_sql_comments(self):
        self.assertEqual(strip_sql_comments("a -- x\nb /* y */ c"), "a \nb  c")


if __name__ == "__main__":
    unittest.main()
