# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic for a single domain aggregate:
#
#   user_service    : registration, login, current-user account
#   profile_service : public profiles and follow / unfollow
#   article_service : listing, feed, CRUD and favorites for Article
#   comment_service : comments on an Article
#   tag_service     : the cached global tag list
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency, and take the viewer's user id explicitly.
# Failures are raised as ``conduit.errors.ServiceError``.
