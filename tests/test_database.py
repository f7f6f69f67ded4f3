import unittest

from dbcase import DbTestCase

from db import database


async def _count(conn, table):
    cur = await conn.execute(f"SELECT COUNT(*) FROM {table};")
    (n,) = await cur.fetchone()
    await cur.close()
    return n


class ConnectTestCase(DbTestCase):
    async def test_new_file_is_created_and_stamped(self):
        async with database.connect() as conn:
            self.assertEqual(await database.schema_version(conn), database.SCHEMA_VERSION)
            self.assertGreater(await _count(conn, "users"), 0)

    async def test_existing_file_is_not_seeded_again(self):
        async with database.connect() as conn:
            users = await _count(conn, "users")

        database._initialized = False
        async with database.connect() as conn:
            self.assertEqual(await _count(conn, "users"), users)
        self.assertTrue(database._initialized)

    async def test_connection_pragmas(self):
        async with database.connect() as conn:
            cur = await conn.execute("PRAGMA busy_timeout;")
            (timeout,) = await cur.fetchone()
            await cur.close()
            cur = await conn.execute("PRAGMA foreign_keys;")
            (fk,) = await cur.fetchone()
            await cur.close()
        self.assertEqual(timeout, database.BUSY_TIMEOUT_MS)
        self.assertEqual(fk, 1)


if __name__ == "__main__":
    unittest.main()
