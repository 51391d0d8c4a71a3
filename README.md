# qengine

A compact SQL front end for an in-memory query engine. It turns SQL text into
a syntax tree, gathers statistics from in-memory tables, estimates costs and
rewrites logical plan trees with a rule-based optimizer.

## Modules

- **`qengine.lexer`**: `tokenize(text)` (or `Lexer(text).tokenize()`) returns a
  list of `Token`s (`type`, `value`, `line`, `column`), ending with an `END`
  token. Keywords are case-insensitive and returned upper-cased; `;` is
  skipped. Malformed input (an unterminated string, a lone `!`, an unexpected
  character) raises `SqlSyntaxError`, a subclass of `ValueError`.
- **`qengine.syntax`**: the tree classes: expressions (`Column`, `Literal`,
  `BinaryExpr`, `ExistsExpr`, `InExpr`, `InListExpr`, each with `clone()`)
  and statements (`SelectStmt`, `CreateTableStmt`, `AlterTableStmt`,
  `InsertStmt`, `UpdateStmt`, `DeleteStmt`, wrapped in `Statement`).
- **`qengine.parser`**: `parse_select(sql)` returns a `SelectStmt`. It supports
  `DISTINCT`, table aliases, joins (`INNER`, `LEFT`, `RIGHT`, `FULL`, `CROSS`),
  `WHERE`, `GROUP BY`, `HAVING`, `ORDER BY ... ASC|DESC`, `LIMIT`, `IN` /
  `NOT IN` lists and subqueries, `EXISTS`, and aggregate references such as
  `COUNT(*)`. The `Parser` class also exposes `parse_expression()`.
- **`qengine.statements`**: `parse_statement(sql)` handles `SELECT`,
  `PATH SELECT`, `CREATE TABLE [IF NOT EXISTS]`, `ALTER TABLE` (add, drop,
  rename and retype columns; add primary key, unique, foreign key and check
  constraints), `INSERT`, `UPDATE` and `DELETE`, returning a `Statement`.
- **`qengine.statistics`**: `Database` holds tables as lists of
  `{column: value}` rows plus optional column schemas. `StatisticsCatalog`
  computes row counts, distinct counts and 16-bin numeric histograms.
- **`qengine.cost_model`**: equality filter and join selectivity, join output
  row estimates and `choose_join_algorithm(...)` (nested loop, hash or merge).
- **`qengine.simplify`**: constant folding (`simplify_expr`,
  `try_eval_const_predicate`, `try_eval_const_scalar`) and value comparison
  (`compare_values`, numeric when both sides are numbers, textual otherwise).
- **`qengine.plan_nodes`**: plan node classes (`SeqScanNode`, `IndexScanNode`,
  `FilterNode`, `ProjectionNode`, `AggregationNode`, `SortNode`, `LimitNode`,
  `JoinNode`, `DistinctNode`) with `walk()` for pre-order traversal.
- **`qengine.optimizer`**: `PlanOptimizer().optimize(root, db)` folds constant
  filters, merges stacked filters, pushes predicates through joins into scans,
  records the columns each scan needs, and turns scans of tables with 256 or
  more rows filtered by a single equality into index scans.

## Install

```
pip install .
```

## Example

```python
from qengine.optimizer import PlanOptimizer
from qengine.parser import parse_select
from qengine.plan_nodes import FilterNode, ProjectionNode, SeqScanNode
from qengine.statistics import Database

db = Database()
db.tables["users"] = [{"id": "1", "name": "ann"}, {"id": "2", "name": "bob"}]

stmt = parse_select("SELECT name FROM users WHERE id = 2;")
plan = ProjectionNode(
    stmt.columns,
    children=[FilterNode(stmt.where, children=[SeqScanNode("users", "users")])],
)
plan = PlanOptimizer().optimize(plan, db)
for node in plan.walk():
    print(node.type.name)        # PROJECTION, then SEQ_SCAN
print(plan.children[0].required_columns)   # ['id', 'name']
```

## What it does not do

The package does not build plans from parsed statements by itself: plan trees
are put together from the `qengine.plan_nodes` classes by the caller. Nor does
it execute plans, load tables from files, store data on disk, or provide a
command-line shell.

## Tests

```
pip install .[test]
pytest
```