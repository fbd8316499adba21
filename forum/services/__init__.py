# Services package.
#
# Each module exposes async functions holding the business rules and
# database access for one part of the forum:
#
#   user_service     — username login (resolve or create), moderator flag
#   authorization    — author-or-moderator rule shared by posts and comments
#   topic_service    — read-only topic list
#   post_service     — post CRUD, cascading delete of comments
#   comment_service  — comment CRUD
#
# All service functions accept an AsyncSession as their first argument
# and only flush; the router layer controls the transaction boundary
# via the ``get_db`` dependency.
