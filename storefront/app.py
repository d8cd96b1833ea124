# module storefront.app
from storefront.app_setup.factory import create_app

app = create_app()
