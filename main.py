from fsregex.server import main


if __name__ == "__main__":
    # 以 stdio 方式启动正则文件工具 MCP 服务
    main()
