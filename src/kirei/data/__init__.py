# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Kirei Data: a generic repository over pluggable storage.

Kirei Data provides one :class:`Repository` facade parameterised by a
:class:`StoragePort`. Predicates and ordering keys are typed expression
trees that the repository rewrites from the public model type into the
storage type's terms; :class:`RepositoryDataLoader` batches lookups from
many concurrent callers into one storage query.

Adapters:
    - **Memory** (``kirei.data.adapters.memory``) - in-process record lists.
    - **JSON file** (``kirei.data.adapters.jsonfile``) - one JSON file per record type.
    - **Relational** (``kirei.data.adapters.sqlalchemy``) - SQLAlchemy async ORM.

Framework-agnostic types are exported directly; the SQLAlchemy adapter is
imported from its own package.
"""

from kirei.data.adapters.jsonfile import JsonFileRepositoryStore, JsonFileStoreProperties
from kirei.data.adapters.memory import MemoryRepositoryStore, StoreStorageAdapter
from kirei.data.batching import BatchingProperties, BatchScope, RepositoryDataLoader
from kirei.data.combinator import and_, combine_and, combine_or, compose, or_
from kirei.data.converter import ExpressionConverter
from kirei.data.events import RepositoryEvents
from kirei.data.expression import (
    Expression,
    ExpressionRewriter,
    ExpressionVisitor,
    Lambda,
    Operator,
    ParameterRebinder,
    build,
    selector,
    where,
)
from kirei.data.mapper import Mapper, ModelConverterEvents
from kirei.data.ordering import Ordering
from kirei.data.ports.outbound import RepositoryPort, RepositoryStore, StoragePort
from kirei.data.repository import Repository, UUIDRepository
from kirei.data.schema import EntitySchema, FieldInfo, SchemaRegistry, key_field, register_schema, schema_of

__all__ = [
    # Expressions
    "Expression",
    "ExpressionConverter",
    "ExpressionRewriter",
    "ExpressionVisitor",
    "Lambda",
    "Operator",
    "ParameterRebinder",
    "and_",
    "build",
    "combine_and",
    "combine_or",
    "compose",
    "or_",
    "selector",
    "where",
    # Schema and mapping
    "EntitySchema",
    "FieldInfo",
    "Mapper",
    "ModelConverterEvents",
    "SchemaRegistry",
    "key_field",
    "register_schema",
    "schema_of",
    # Repository
    "Ordering",
    "Repository",
    "RepositoryEvents",
    "RepositoryPort",
    "RepositoryStore",
    "StoragePort",
    "UUIDRepository",
    # Batching
    "BatchScope",
    "BatchingProperties",
    "RepositoryDataLoader",
    # Stores
    "JsonFileRepositoryStore",
    "JsonFileStoreProperties",
    "MemoryRepositoryStore",
    "StoreStorageAdapter",
]
