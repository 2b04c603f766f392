# Services package.
#
#   post_service     content repository (CRUD, slug/id lookup, slugify)
#   image_service    cover-image upload and advisory removal
#   publish_service  validated write path (upload → write → cleanup)
#   feed_service     cached read views (recent, full list, management, detail)
#
# Functions touching the database accept an AsyncSession as their first
# argument so that the router layer controls the transaction boundary via
# the ``get_db`` dependency.
