from optistore import create_app

app = create_app()
