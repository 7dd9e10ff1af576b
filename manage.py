from tailorbook import create_app
from tailorbook.models import *  # noqa

app = create_app()


if __name__ == '__main__':
    app.run()
