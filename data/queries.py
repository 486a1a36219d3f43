"""
SQL queries as constants for better maintainability.

All queries are defined here to avoid SQL string literals scattered
throughout the codebase. This makes it easier to:
- Review SQL security
- Optimize queries
- Update schema changes
"""

# ==================== Location Queries ====================

SELECT_STORAGE_LOCATION_ID = """
    SELECT id FROM locations
    WHERE kind = 'storage'
    ORDER BY id ASC
    LIMIT 1
"""

SELECT_PERSON_LOCATION_ID = """
    SELECT id FROM locations
    WHERE kind = 'person' AND person_id = ?
"""

INSERT_PERSON_LOCATION = """
    INSERT INTO locations (kind, name, person_id)
    VALUES ('person', ?, ?)
"""

UPDATE_PERSON_LOCATION_NAME = """
    UPDATE locations
    SET name = ?
    WHERE kind = 'person' AND person_id = ?
"""

# ==================== Article Queries ====================

# Article row joined with its live location and holder name
_ARTICLE_VIEW = """
    SELECT
        a.id,
        a.category,
        a.label,
        a.size,
        a.notes,
        a.expiry_date,
        a.helmet_manufactured_at,
        a.helmet_last_check,
        a.helmet_next_check,
        a.location_id,
        a.active,
        a.created_at,
        a.updated_at,
        l.kind AS location_kind,
        l.name AS location_name,
        l.person_id,
        p.first_name,
        p.last_name,
        (
            SELECT MAX(m.performed_at)
            FROM movements m
            WHERE m.article_id = a.id
        ) AS last_movement_at
    FROM articles a
    JOIN locations l ON l.id = a.location_id
    LEFT JOIN persons p ON p.id = l.person_id
"""

SELECT_ACTIVE_ARTICLE = _ARTICLE_VIEW + """
    WHERE a.id = ? AND a.active = 1
"""

SELECT_ACTIVE_ARTICLES = _ARTICLE_VIEW + """
    WHERE a.active = 1
    ORDER BY a.id
"""

SELECT_ASSIGNED_ARTICLES = _ARTICLE_VIEW + """
    WHERE a.active = 1 AND l.kind = 'person'
    ORDER BY a.id
"""

SELECT_PERSON_ARTICLES = _ARTICLE_VIEW + """
    WHERE a.active = 1 AND l.kind = 'person' AND l.person_id = ?
    ORDER BY a.id
"""

SELECT_ARTICLE_FOR_UPDATE = """
    SELECT id, category, label, size, notes, expiry_date,
           helmet_manufactured_at, helmet_last_check, helmet_next_check,
           location_id, active
    FROM articles
    WHERE id = ?
"""

INSERT_ARTICLE = """
    INSERT INTO articles
    (id, category, label, size, notes, expiry_date, helmet_manufactured_at,
     helmet_last_check, helmet_next_check, location_id, active, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
"""

UPDATE_ARTICLE_FIELDS = """
    UPDATE articles
    SET {assignments}, updated_at = ?
    WHERE id = ?
"""

UPDATE_ARTICLE_LOCATION = """
    UPDATE articles
    SET location_id = ?, updated_at = ?
    WHERE id = ?
"""

RETIRE_ARTICLE = """
    UPDATE articles
    SET active = 0, updated_at = ?
    WHERE id = ? AND active = 1
"""

COUNT_ACTIVE_ARTICLES_AT_LOCATION = """
    SELECT COUNT(*) FROM articles
    WHERE location_id = ? AND active = 1
"""

MOVE_RETIRED_ARTICLES = """
    UPDATE articles
    SET location_id = ?
    WHERE location_id = ? AND active = 0
"""

# ==================== Movement Queries ====================

INSERT_MOVEMENT = """
    INSERT INTO movements
    (article_id, from_location_id, to_location_id, action, event_type,
     old_value, new_value, performed_at, performed_by)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

SELECT_ARTICLE_MOVEMENTS = """
    SELECT
        m.id,
        m.article_id,
        m.action,
        m.event_type,
        m.old_value,
        m.new_value,
        m.performed_at,
        m.performed_by,
        m.from_location_id,
        m.to_location_id,
        fl.kind AS from_kind,
        CASE WHEN fl.kind = 'person'
             THEN fp.first_name || ' ' || fp.last_name
             ELSE fl.name END AS from_name,
        fl.person_id AS from_person_id,
        tl.kind AS to_kind,
        CASE WHEN tl.kind = 'person'
             THEN tp.first_name || ' ' || tp.last_name
             ELSE tl.name END AS to_name,
        tl.person_id AS to_person_id
    FROM movements m
    LEFT JOIN locations fl ON fl.id = m.from_location_id
    LEFT JOIN persons fp ON fp.id = fl.person_id
    LEFT JOIN locations tl ON tl.id = m.to_location_id
    LEFT JOIN persons tp ON tp.id = tl.person_id
    WHERE m.article_id = ?
    ORDER BY m.performed_at DESC, m.id DESC
    LIMIT ?
"""

COUNT_ARTICLE_MOVEMENTS = """
    SELECT COUNT(*) FROM movements WHERE article_id = ?
"""

# ==================== Person Queries ====================

INSERT_PERSON = """
    INSERT INTO persons (first_name, last_name, status, created_at)
    VALUES (?, ?, ?, ?)
"""

SELECT_PERSON_BY_ID = """
    SELECT id, first_name, last_name, status, created_at
    FROM persons
    WHERE id = ?
"""

SELECT_ALL_PERSONS = """
    SELECT
        p.id,
        p.first_name,
        p.last_name,
        p.status,
        p.created_at,
        COALESCE(ac.article_count, 0) AS article_count
    FROM persons p
    LEFT JOIN (
        SELECT l.person_id, COUNT(*) AS article_count
        FROM articles a
        JOIN locations l ON l.id = a.location_id
        WHERE a.active = 1 AND l.kind = 'person'
        GROUP BY l.person_id
    ) ac ON ac.person_id = p.id
    ORDER BY lower(p.last_name), lower(p.first_name)
"""

UPDATE_PERSON_FIELDS = """
    UPDATE persons
    SET {assignments}
    WHERE id = ?
"""

DELETE_PERSON = """
    DELETE FROM persons WHERE id = ?
"""

# ==================== Utility Queries ====================

PING = "SELECT 1"
