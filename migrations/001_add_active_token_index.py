"""
Migration: one active owner per fcm_token

Deactivates duplicate active rows in user_devices (keeps the most recently
used one) and adds a partial unique index on fcm_token for active rows.
SQLite only.
"""
import os
import sqlite3
import sys


def migrate(db_path: str) -> int:
    """Runs the migration, returns the number of deactivated rows"""

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    deactivated = 0

    try:
        print("🔧 Migration: unique active fcm_token")

        # 1. Tokens with more than one active owner
        cursor.execute('''
            SELECT fcm_token, COUNT(*)
            FROM user_devices
            WHERE is_active = 1
            GROUP BY fcm_token
            HAVING COUNT(*) > 1
        ''')
        duplicates = cursor.fetchall()

        for token, count in duplicates:
            print(f"   Token {token[:20]}... has {count} active rows")
            cursor.execute('''
                UPDATE user_devices
                SET is_active = 0
                WHERE fcm_token = ?
                AND is_active = 1
                AND id NOT IN (
                    SELECT id FROM user_devices
                    WHERE fcm_token = ? AND is_active = 1
                    ORDER BY last_used DESC, id DESC
                    LIMIT 1
                )
            ''', (token, token))
            deactivated += cursor.rowcount

        # 2. Partial unique index
        cursor.execute('''
            CREATE UNIQUE INDEX IF NOT EXISTS uq_user_devices_active_token
            ON user_devices (fcm_token)
            WHERE is_active = 1
        ''')

        conn.commit()
        print(f"✅ Migration done, deactivated {deactivated} duplicate row(s)")
        return deactivated

    except Exception as e:
        conn.rollback()
        print(f"❌ Migration failed: {e}")
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    db_url = os.environ.get('DATABASE_URL', 'sqlite:///./pushsvc.db')
    if not db_url.startswith('sqlite:///'):
        print("Only SQLite databases are supported")
        sys.exit(1)
    migrate(db_url.replace('sqlite:///', '', 1))
