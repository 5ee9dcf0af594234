from vault.views.auth_handlers import (
    login as login,
)
from vault.views.auth_handlers import (
    logout as logout,
)
from vault.views.auth_handlers import (
    me as me,
)
from vault.views.auth_handlers import (
    register as register,
)
from vault.views.share_handlers import (
    check_share as check_share,
)
from vault.views.share_handlers import (
    consume_share as consume_share,
)
from vault.views.share_handlers import (
    delete_share as delete_share,
)
from vault.views.share_handlers import (
    download_share as download_share,
)
from vault.views.share_handlers import (
    upload_file as upload_file,
)
from vault.views.share_handlers import (
    upload_text as upload_text,
)
from vault.views.user_handlers import my_shares as my_shares
