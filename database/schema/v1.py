"""Initial schema: users, tasks, KPIs, applications, submissions and payments."""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'name', 'type': 'TEXT'},
                {'name': 'role', 'type': 'TEXT', 'nullable': False, 'default': "'builder'"},
                {'name': 'wallet_address', 'type': 'TEXT'},
                {'name': 'bio', 'type': 'TEXT'},
                {'name': 'location', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_users_role', 'columns': ['role']}
            ]
        },
        {
            'name': 'tasks',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False},
                {'name': 'location', 'type': 'TEXT'},
                {'name': 'date', 'type': 'TIMESTAMP'},
                {'name': 'budget', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'Open'"},
                {'name': 'stream_id', 'type': 'TEXT'},
                {'name': 'created_by_id', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['created_by_id'], 'references': 'users(id)', 'on_delete': 'SET NULL'}
            ],
            'indexes': [
                {'name': 'idx_tasks_status', 'columns': ['status']},
                {'name': 'idx_tasks_type', 'columns': ['type']}
            ]
        },
        {
            'name': 'kpis',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'task_id', 'type': 'UUID', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'target', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['task_id'], 'references': 'tasks(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_kpis_task', 'columns': ['task_id']}
            ]
        },
        {
            'name': 'applications',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'task_id', 'type': 'UUID', 'nullable': False},
                {'name': 'builder_id', 'type': 'UUID', 'nullable': False},
                {'name': 'cover_letter', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'Pending'"},
                {'name': 'review_notes', 'type': 'TEXT'},
                {'name': 'reviewed_at', 'type': 'TIMESTAMP'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['task_id'], 'references': 'tasks(id)', 'on_delete': 'CASCADE'},
                {'columns': ['builder_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_applications_task_builder', 'columns': ['task_id', 'builder_id'], 'unique': True},
                {'name': 'idx_applications_status', 'columns': ['status']}
            ]
        },
        {
            'name': 'submissions',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'task_id', 'type': 'UUID', 'nullable': False},
                {'name': 'builder_id', 'type': 'UUID', 'nullable': False},
                {'name': 'work_summary', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'Pending Review'"},
                {'name': 'review_notes', 'type': 'TEXT'},
                {'name': 'reviewed_at', 'type': 'TIMESTAMP'},
                {'name': 'amount', 'type': 'DECIMAL'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['task_id'], 'references': 'tasks(id)', 'on_delete': 'CASCADE'},
                {'columns': ['builder_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_submissions_builder', 'columns': ['builder_id']},
                {'name': 'idx_submissions_status', 'columns': ['status']}
            ]
        },
        {
            'name': 'submission_kpi_results',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'submission_id', 'type': 'UUID', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'target', 'type': 'TEXT', 'nullable': False},
                {'name': 'achieved', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'Pending'"}
            ],
            'foreign_keys': [
                {'columns': ['submission_id'], 'references': 'submissions(id)', 'on_delete': 'CASCADE'}
            ]
        },
        {
            'name': 'submission_files',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'submission_id', 'type': 'UUID', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'size', 'type': 'TEXT'},
                {'name': 'type', 'type': 'TEXT'},
                {'name': 'url', 'type': 'TEXT', 'nullable': False}
            ],
            'foreign_keys': [
                {'columns': ['submission_id'], 'references': 'submissions(id)', 'on_delete': 'CASCADE'}
            ]
        },
        {
            'name': 'payments',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'stream_id', 'type': 'TEXT'},
                {'name': 'amount', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'token', 'type': 'TEXT'},
                {'name': 'from_address', 'type': 'TEXT'},
                {'name': 'to_address', 'type': 'TEXT'},
                {'name': 'tx_hash', 'type': 'TEXT'},
                {'name': 'builder_id', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['builder_id'], 'references': 'users(id)', 'on_delete': 'SET NULL'}
            ],
            'indexes': [
                {'name': 'idx_payments_builder', 'columns': ['builder_id']}
            ]
        }
    ],
    'migrations': []
}
