import uvicorn

from badge_proxy.vars import HOST, PORT


def main():
    uvicorn.run("badge_proxy.server:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
