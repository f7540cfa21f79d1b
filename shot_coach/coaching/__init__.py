"""
Coaching core: turns recorded shots into scores, trends and grind advice.

Modules
-------
advisor    : one-shot grind adjustment from time, taste and grinder profile.
scorer     : 0-100 shot quality score (single source of truth).
aggregate  : distribution, trend and consistency across many shots.
details    : per-shot report composed from the shot catalog.
milestones : bean-scoped achievements (first perfect, dialed in, streaks).
store      : persisted next-shot recommendation per bean.
catalog    : shot/bean lookup protocol and its SQLite implementation.
workflow   : record shot → advise → persist, and taste-feedback updates.
"""
