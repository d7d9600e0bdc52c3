from meetinsight import create_app

app = create_app()
