from enum import StrEnum


class EventTypes(StrEnum):
    """Well-known application topics, grouped by ``namespace:action``."""

    # component lifecycle
    COMPONENT_MOUNT = 'component:mount'
    COMPONENT_UNMOUNT = 'component:unmount'
    COMPONENT_UPDATE = 'component:update'

    # data
    DATA_LOAD = 'data:load'
    DATA_SAVE = 'data:save'
    DATA_UPDATE = 'data:update'
    DATA_DELETE = 'data:delete'

    # user interaction
    USER_LOGIN = 'user:login'
    USER_LOGOUT = 'user:logout'
    USER_ACTION = 'user:action'

    # api
    API_REQUEST = 'api:request'
    API_SUCCESS = 'api:success'
    API_ERROR = 'api:error'

    # navigation
    NAVIGATION_CHANGE = 'navigation:change'
    ROUTE_CHANGE = 'route:change'

    # notifications
    NOTIFICATION_SHOW = 'notification:show'
    NOTIFICATION_HIDE = 'notification:hide'

    # modals
    MODAL_OPEN = 'modal:open'
    MODAL_CLOSE = 'modal:close'

    # forms
    FORM_SUBMIT = 'form:submit'
    FORM_VALIDATION = 'form:validation'
    FORM_ERROR = 'form:error'

    # tables
    TABLE_SORT = 'table:sort'
    TABLE_FILTER = 'table:filter'
    TABLE_PAGE = 'table:page'
    TABLE_SELECT = 'table:select'

    # application
    APP_READY = 'app:ready'
    APP_ERROR = 'app:error'
    APP_UPDATE = 'app:update'


__all__ = ['EventTypes']
